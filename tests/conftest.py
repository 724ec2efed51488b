"""
Shared fixtures for provisioner tests.
"""

from unittest.mock import Mock

import pytest

from provisioner.cloudformation_utils import CloudFormationManager
from provisioner.config import ProvisionerConfig
from provisioner.database import create_session_factory
from provisioner.logger import DeployLogger
from provisioner.models.cluster import ClusterStatus, ClusterType
from provisioner.services.cluster_store import ClusterStore
from provisioner.services.credential_service import CredentialDelegationManager
from provisioner.services.parameter_builder import ParameterBuilder
from provisioner.template_resolver import TemplateInfo, TemplateResolver

ALLOWED_ACCOUNT = "123456789012"
STACK_ARN = (
    "arn:aws:cloudformation:us-east-1:111111111111:"
    "stack/control-plane-core-abcdef12/0f1e2d3c-aaaa-bbbb-cccc-000000000001"
)
TEMPLATE_URL = "https://templates-bucket.s3.us-east-1.amazonaws.com/dedicated-main-template.yaml"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch):
    """Fake credentials so boto3 clients never look for real ones."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def config(tmp_path) -> ProvisionerConfig:
    """Configuration with an in-memory database and a known allow-list."""
    return ProvisionerConfig(
        database_url="sqlite:///:memory:",
        aws_region="us-east-1",
        template_bucket="templates-bucket",
        allowed_account_ids=[ALLOWED_ACCOUNT],
        require_external_id=True,
        logs_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def logger(tmp_path):
    """Quiet logger writing under tmp_path."""
    log = DeployLogger("test", "test", logs_dir=tmp_path / "logs", quiet=True)
    yield log
    log.close()


@pytest.fixture
def store() -> ClusterStore:
    """Cluster store on a fresh in-memory SQLite database."""
    return ClusterStore(create_session_factory("sqlite:///:memory:"))


@pytest.fixture
def make_cluster(store):
    """Factory inserting a cluster and optionally forcing its state."""

    def _make(
        name: str = "core",
        cidr: str = "10.201.0.0/16",
        region: str = "us-east-1",
        cluster_type: ClusterType = ClusterType.DEDICATED,
        status: ClusterStatus = ClusterStatus.IN_ACTIVE,
        **fields,
    ):
        cluster = store.create(name, cluster_type, "production", region, cidr)
        updates = dict(fields)
        if status != ClusterStatus.IN_ACTIVE:
            updates["status"] = status
        if updates:
            cluster = store.update(cluster.cluster_id, updates)
        return cluster

    return _make


@pytest.fixture
def engine() -> Mock:
    """Mocked CloudFormation manager."""
    return Mock(spec=CloudFormationManager)


@pytest.fixture
def resolver() -> Mock:
    """Mocked template resolver returning a fixed URL."""
    mock = Mock(spec=TemplateResolver)
    mock.resolve.return_value = TemplateInfo(
        key="dedicated-main-template.yaml", url=TEMPLATE_URL
    )
    return mock


@pytest.fixture
def builder(config) -> ParameterBuilder:
    return ParameterBuilder(config)


@pytest.fixture
def credentials() -> Mock:
    """Mocked delegation manager that accepts every policy check."""
    return Mock(spec=CredentialDelegationManager)
