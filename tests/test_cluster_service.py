"""
Tests for the cluster service facade.
"""

from unittest.mock import Mock

import pytest

from provisioner.exceptions import (
    CidrOverlapError,
    ClusterNotFoundError,
    ErrorKind,
    ForbiddenError,
    ValidationError,
)
from provisioner.models.cluster import ClusterStatus, ClusterType
from provisioner.models.requests import DelegationRequest
from provisioner.models.results import ValidationResult
from provisioner.services.cluster_service import ClusterService
from provisioner.services.deployment_service import DeploymentOrchestrator
from provisioner.services.reconciler import StatusReconciler

from tests.conftest import ALLOWED_ACCOUNT


@pytest.fixture
def orchestrator():
    return Mock(spec=DeploymentOrchestrator)


@pytest.fixture
def reconciler():
    return Mock(spec=StatusReconciler)


@pytest.fixture
def service(store, orchestrator, reconciler, logger):
    return ClusterService(store, orchestrator, reconciler, logger)


class TestCreateCluster:
    """Test cluster registration."""

    def test_creates_in_active_cluster(self, service, logger):
        record = service.create_cluster(
            "core", "shared", "staging", "us-east-1", "10.201.0.0/16", correlation_id="req-c"
        )

        assert record.status == ClusterStatus.IN_ACTIVE
        assert record.type == ClusterType.SHARED
        assert record.cidr == "10.201.0.0/16"
        log = logger.log_path.read_text()
        assert "AUDIT cluster.created" in log
        assert "correlation_id=req-c" in log

    def test_overlap_in_same_region_conflicts(self, service):
        service.create_cluster("a", "dedicated", "prod", "us-east-1", "10.0.0.0/16")

        with pytest.raises(CidrOverlapError) as exc_info:
            service.create_cluster("b", "dedicated", "prod", "us-east-1", "10.0.128.0/17")

        error = exc_info.value
        assert error.kind == ErrorKind.CONFLICT
        assert error.to_dict()["overlaps"] == ["10.0.0.0/16"]
        assert error.correlation_id.startswith("req-")

    def test_same_cidr_in_other_region_is_allowed(self, service):
        service.create_cluster("a", "dedicated", "prod", "us-east-1", "10.0.0.0/16")
        record = service.create_cluster("b", "dedicated", "prod", "eu-west-1", "10.0.0.0/16")
        assert record.region == "eu-west-1"

    @pytest.mark.parametrize("cidr", ["8.8.0.0/16", "10.0.0.1/16", "garbage"])
    def test_invalid_cidr(self, service, cidr):
        with pytest.raises(ValidationError):
            service.create_cluster("a", "dedicated", "prod", "us-east-1", cidr)

    def test_invalid_type(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_cluster("a", "hybrid", "prod", "us-east-1", "10.0.0.0/16")
        assert "hybrid" in exc_info.value.message

    def test_blank_name(self, service):
        with pytest.raises(ValidationError):
            service.create_cluster("  ", "dedicated", "prod", "us-east-1", "10.0.0.0/16")

    def test_overlong_name(self, service, store):
        with pytest.raises(ValidationError) as exc_info:
            service.create_cluster("x" * 130, "dedicated", "prod", "us-east-1", "10.0.0.0/16")
        assert "too long" in exc_info.value.message
        assert store.list() == []


class TestDeleteCluster:
    """Test cluster removal."""

    def test_in_active_cluster_is_deleted(self, service, store, make_cluster):
        cluster = make_cluster()

        service.delete_cluster(cluster.cluster_id)

        with pytest.raises(ClusterNotFoundError):
            store.get(cluster.cluster_id)

    @pytest.mark.parametrize(
        "status", [ClusterStatus.ACTIVE, ClusterStatus.DEPLOYING, ClusterStatus.FAILED]
    )
    def test_deployed_cluster_is_forbidden(self, service, store, make_cluster, status):
        cluster = make_cluster(status=status)

        with pytest.raises(ForbiddenError) as exc_info:
            service.delete_cluster(cluster.cluster_id)

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert store.get(cluster.cluster_id).status == status

    def test_unknown_cluster(self, service):
        with pytest.raises(ClusterNotFoundError):
            service.delete_cluster("missing")

    def test_cluster_claimed_after_read_is_not_deleted(self, service, store, make_cluster, monkeypatch):
        cluster = make_cluster()
        original_get = store.get

        def racing_get(cluster_id, *args, **kwargs):
            record = original_get(cluster_id, *args, **kwargs)
            # A deployment claims the cluster after our read
            store.update(cluster_id, {"status": ClusterStatus.DEPLOYING})
            return record

        monkeypatch.setattr(store, "get", racing_get)

        with pytest.raises(ForbiddenError) as exc_info:
            service.delete_cluster(cluster.cluster_id, correlation_id="req-d")

        assert exc_info.value.correlation_id == "req-d"
        assert original_get(cluster.cluster_id).status == ClusterStatus.DEPLOYING


class TestDelegation:
    """Test that deployment operations reach their services."""

    def test_initiate_deployment(self, service, orchestrator):
        service.initiate_deployment("abc", correlation_id="req-1")
        orchestrator.deploy.assert_called_once_with("abc", None, None, correlation_id="req-1")

    def test_update_deployment(self, service, orchestrator):
        service.update_deployment("abc")
        orchestrator.update.assert_called_once_with("abc", None, None, correlation_id=None)

    def test_refresh_status(self, service, reconciler):
        service.refresh_status("abc", include_events=True)
        reconciler.reconcile.assert_called_once_with(
            "abc", delegation=None, include_events=True, correlation_id=None
        )

    def test_list_clusters(self, service, make_cluster):
        make_cluster(name="a", cidr="10.1.0.0/16")
        make_cluster(name="b", cidr="10.2.0.0/16", region="eu-west-1")

        assert [c.name for c in service.list_clusters(region="eu-west-1")] == ["b"]


class TestValidateDelegation:
    """Test the trial role assumption entry point."""

    def test_requires_credentials(self, service):
        delegation = DelegationRequest(target_account_id=ALLOWED_ACCOUNT, role_name="r")
        with pytest.raises(ValidationError):
            service.validate_delegation(delegation)

    def test_delegates_to_credentials(self, store, orchestrator, reconciler, logger, credentials):
        credentials.validate_role.return_value = ValidationResult(subject="x")
        service = ClusterService(store, orchestrator, reconciler, logger, credentials)
        delegation = DelegationRequest(
            target_account_id=ALLOWED_ACCOUNT, role_name="ControlPlaneDeploy", external_id="e"
        )

        result = service.validate_delegation(delegation, correlation_id="req-v")

        assert result.is_valid is True
        credentials.validate_role.assert_called_once_with(
            ALLOWED_ACCOUNT,
            "ControlPlaneDeploy",
            external_id="e",
            session_name="cluster-role-check",
            correlation_id="req-v",
        )
