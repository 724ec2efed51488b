"""
Tests for the status reconciler.
"""

from datetime import datetime, timezone

import pytest

from provisioner.exceptions import (
    ClusterNotFoundError,
    CloudFormationError,
    DelegationError,
    InternalError,
    StackNotFoundError,
)
from provisioner.models.cluster import ClusterStatus
from provisioner.models.deployment import StackDescription
from provisioner.models.requests import DelegationRequest
from provisioner.services.reconciler import StatusReconciler

from tests.conftest import ALLOWED_ACCOUNT, STACK_ARN


def described(status, outputs=None):
    return StackDescription(
        stack_id=STACK_ARN,
        stack_name="control-plane-core-abcdef12",
        status=status,
        outputs=outputs or {},
    )


@pytest.fixture
def reconciler(store, engine, logger, credentials):
    return StatusReconciler(store, engine, logger, credentials)


@pytest.fixture
def deploying(make_cluster):
    return make_cluster(
        status=ClusterStatus.DEPLOYING,
        deployment_id=STACK_ARN,
        deployment_status="CREATE_IN_PROGRESS",
    )


class TestNotDeployed:
    """Test clusters without a stack."""

    def test_no_deployment_skips_engine(self, reconciler, engine, make_cluster):
        cluster = make_cluster()

        snapshot = reconciler.reconcile(cluster.cluster_id)

        assert snapshot.deployment_status == "NOT_DEPLOYED"
        assert snapshot.cluster_status == ClusterStatus.IN_ACTIVE
        assert snapshot.changed is False
        engine.describe_stack.assert_not_called()

    def test_unknown_cluster(self, reconciler):
        with pytest.raises(ClusterNotFoundError) as exc_info:
            reconciler.reconcile("missing", correlation_id="req-x")
        assert exc_info.value.correlation_id == "req-x"


class TestReconcile:
    """Test folding engine status into the record."""

    def test_success_activates_and_stamps_deployed_at(
        self, reconciler, engine, store, deploying
    ):
        engine.describe_stack.return_value = described(
            "CREATE_COMPLETE", {"VpcId": "vpc-123"}
        )

        snapshot = reconciler.reconcile(deploying.cluster_id)

        assert snapshot.cluster_status == ClusterStatus.ACTIVE
        assert snapshot.deployment_status == "CREATE_COMPLETE"
        assert snapshot.stack_outputs == {"VpcId": "vpc-123"}
        assert snapshot.changed is True
        record = store.get(deploying.cluster_id)
        assert record.status == ClusterStatus.ACTIVE
        assert record.deployed_at is not None
        assert engine.describe_stack.call_args.kwargs["region"] == "us-east-1"

    def test_deployed_at_is_sticky(self, reconciler, engine, store, make_cluster):
        first = datetime(2025, 1, 1, tzinfo=timezone.utc)
        cluster = make_cluster(
            status=ClusterStatus.DEPLOYING,
            deployment_id=STACK_ARN,
            deployment_status="UPDATE_IN_PROGRESS",
            deployed_at=first,
        )
        engine.describe_stack.return_value = described("UPDATE_COMPLETE")

        reconciler.reconcile(cluster.cluster_id)

        deployed_at = store.get(cluster.cluster_id).deployed_at
        assert deployed_at.replace(tzinfo=timezone.utc) == first

    def test_unchanged_state_is_not_written(self, reconciler, engine, store, deploying):
        engine.describe_stack.return_value = described("CREATE_IN_PROGRESS")
        before = store.get(deploying.cluster_id).updated_at

        snapshot = reconciler.reconcile(deploying.cluster_id)

        assert snapshot.changed is False
        assert store.get(deploying.cluster_id).updated_at == before

    def test_failure_status_marks_failed(self, reconciler, engine, store, deploying, logger):
        engine.describe_stack.return_value = described("ROLLBACK_COMPLETE")

        snapshot = reconciler.reconcile(deploying.cluster_id, correlation_id="req-r")

        assert snapshot.cluster_status == ClusterStatus.FAILED
        assert store.get(deploying.cluster_id).deployed_at is None
        log = logger.log_path.read_text()
        assert "to_status=Failed" in log
        assert "correlation_id=req-r" in log

    @pytest.mark.parametrize("status", ["UPDATE_COMPLETE_CLEANUP_IN_PROGRESS", "SOMETHING_NEW"])
    def test_in_progress_and_unknown_codes_stay_deploying(
        self, reconciler, engine, store, make_cluster, status
    ):
        cluster = make_cluster(status=ClusterStatus.ACTIVE, deployment_id=STACK_ARN)
        engine.describe_stack.return_value = described(status)

        snapshot = reconciler.reconcile(cluster.cluster_id)

        assert snapshot.cluster_status == ClusterStatus.DEPLOYING
        assert store.get(cluster.cluster_id).deployment_status == status

    def test_include_events(self, reconciler, engine, deploying):
        engine.describe_stack.return_value = described("CREATE_IN_PROGRESS")
        engine.list_stack_events.return_value = [
            {"resource_status": "CREATE_IN_PROGRESS", "logical_resource_id": "VPC"}
        ]

        snapshot = reconciler.reconcile(deploying.cluster_id, include_events=True)

        assert snapshot.recent_events[0]["logical_resource_id"] == "VPC"
        assert "recent_events" in snapshot.to_dict()

    def test_events_not_fetched_by_default(self, reconciler, engine, deploying):
        engine.describe_stack.return_value = described("CREATE_IN_PROGRESS")

        reconciler.reconcile(deploying.cluster_id)

        engine.list_stack_events.assert_not_called()


class TestAnomalies:
    """Test vanished stacks and failed status checks."""

    def test_missing_stack_is_flagged(self, reconciler, engine, store, make_cluster):
        cluster = make_cluster(status=ClusterStatus.ACTIVE, deployment_id=STACK_ARN)
        engine.describe_stack.side_effect = StackNotFoundError(STACK_ARN)

        snapshot = reconciler.reconcile(cluster.cluster_id)

        assert snapshot.stack_missing is True
        assert snapshot.deployment_status == "STACK_NOT_FOUND"
        assert "no longer exists" in snapshot.error
        record = store.get(cluster.cluster_id)
        assert record.status == ClusterStatus.FAILED
        assert record.deployment_status == "STACK_NOT_FOUND"

    def test_missing_stack_twice_writes_once(self, reconciler, engine, store, make_cluster):
        cluster = make_cluster(status=ClusterStatus.ACTIVE, deployment_id=STACK_ARN)
        engine.describe_stack.side_effect = StackNotFoundError(STACK_ARN)

        assert reconciler.reconcile(cluster.cluster_id).changed is True
        assert reconciler.reconcile(cluster.cluster_id).changed is False

    def test_engine_error_leaves_record_untouched(self, reconciler, engine, store, deploying):
        engine.describe_stack.side_effect = CloudFormationError(
            "CloudFormation describe_stacks failed", context="Throttling"
        )

        with pytest.raises(InternalError) as exc_info:
            reconciler.reconcile(deploying.cluster_id, correlation_id="req-e")

        assert exc_info.value.correlation_id == "req-e"
        assert exc_info.value.context.startswith("STATUS_CHECK_FAILED")
        record = store.get(deploying.cluster_id)
        assert record.status == ClusterStatus.DEPLOYING
        assert record.deployment_status == "CREATE_IN_PROGRESS"

    def test_delegated_status_check(self, reconciler, engine, credentials, deploying):
        session = object()
        credentials.assume.return_value = session
        engine.describe_stack.return_value = described("CREATE_IN_PROGRESS")
        delegation = DelegationRequest(
            target_account_id=ALLOWED_ACCOUNT, role_name="ControlPlaneStatus", external_id="e"
        )

        reconciler.reconcile(deploying.cluster_id, delegation=delegation)

        assert (
            credentials.assume.call_args.kwargs["session_name"]
            == f"cluster-status-{deploying.cluster_id[:8]}"
        )
        assert engine.describe_stack.call_args.args[1] is session

    def test_delegation_failure_leaves_record_untouched(
        self, reconciler, engine, credentials, store, deploying
    ):
        credentials.assume.side_effect = DelegationError("denied")
        delegation = DelegationRequest(
            target_account_id=ALLOWED_ACCOUNT, role_name="ControlPlaneStatus", external_id="e"
        )

        with pytest.raises(InternalError):
            reconciler.reconcile(deploying.cluster_id, delegation=delegation)

        engine.describe_stack.assert_not_called()
        assert store.get(deploying.cluster_id).status == ClusterStatus.DEPLOYING
