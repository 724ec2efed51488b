"""
End-to-end lifecycle: register, deploy, reconcile.

Uses the real store, builder, orchestrator and reconciler; only the
template engine and the template lookup are mocked.
"""

from provisioner.models.cluster import ClusterStatus
from provisioner.models.deployment import (
    DeploymentOperation,
    StackDescription,
    StackOperationResult,
)
from provisioner.services.cluster_service import ClusterService
from provisioner.services.deployment_service import DeploymentOrchestrator
from provisioner.services.reconciler import StatusReconciler

from tests.conftest import STACK_ARN


class TestClusterLifecycle:
    """Test a cluster from registration to Active."""

    def test_create_deploy_reconcile(self, store, engine, resolver, builder, logger):
        orchestrator = DeploymentOrchestrator(store, engine, resolver, builder, logger)
        reconciler = StatusReconciler(store, engine, logger)
        service = ClusterService(store, orchestrator, reconciler, logger)

        cluster = service.create_cluster(
            "core", "dedicated", "production", "us-east-1", "10.201.0.0/16"
        )

        engine.create_or_update_stack.return_value = StackOperationResult(
            stack_id=STACK_ARN,
            stack_name=f"control-plane-core-{cluster.cluster_id[:8]}",
            status="CREATE_IN_PROGRESS",
            operation=DeploymentOperation.CREATE,
        )
        outcome = service.initiate_deployment(cluster.cluster_id)

        params = engine.create_or_update_stack.call_args.args[0]
        assert {
            key: params.parameter_value(key)
            for key in (
                "PublicSubnet1CIDR",
                "PublicSubnet2CIDR",
                "PublicSubnet3CIDR",
                "PrivateAppSubnet1CIDR",
                "PrivateAppSubnet2CIDR",
                "PrivateAppSubnet3CIDR",
                "PrivateDBSubnet1CIDR",
                "PrivateDBSubnet2CIDR",
                "PrivateDBSubnet3CIDR",
            )
        } == {
            "PublicSubnet1CIDR": "10.201.0.0/20",
            "PublicSubnet2CIDR": "10.201.16.0/20",
            "PublicSubnet3CIDR": "10.201.32.0/20",
            "PrivateAppSubnet1CIDR": "10.201.48.0/20",
            "PrivateAppSubnet2CIDR": "10.201.64.0/20",
            "PrivateAppSubnet3CIDR": "10.201.80.0/20",
            "PrivateDBSubnet1CIDR": "10.201.96.0/20",
            "PrivateDBSubnet2CIDR": "10.201.112.0/20",
            "PrivateDBSubnet3CIDR": "10.201.128.0/20",
        }
        assert outcome.cluster_status == "Deploying"

        engine.describe_stack.return_value = StackDescription(
            stack_id=STACK_ARN,
            stack_name=outcome.stack_name,
            status="CREATE_COMPLETE",
            outputs={"VpcId": "vpc-0abc"},
        )
        snapshot = service.refresh_status(cluster.cluster_id)

        assert snapshot.cluster_status == ClusterStatus.ACTIVE
        assert snapshot.deployed_at is not None
        assert snapshot.stack_outputs == {"VpcId": "vpc-0abc"}
        assert engine.describe_stack.call_args.args[0] == STACK_ARN

        # A later update goes through the stored stack ARN
        engine.create_or_update_stack.return_value = StackOperationResult(
            stack_id=STACK_ARN,
            stack_name="control-plane-core-abcdef12",
            status="UPDATE_IN_PROGRESS",
            operation=DeploymentOperation.UPDATE,
        )
        service.update_deployment(cluster.cluster_id)

        assert engine.create_or_update_stack.call_args.kwargs["update"] is True
        record = service.get_cluster(cluster.cluster_id)
        assert record.status == ClusterStatus.DEPLOYING
        assert record.deployed_at == snapshot.deployed_at
