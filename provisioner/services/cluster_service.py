"""
Cluster Service

Entry point for request handlers and CLI commands: cluster CRUD plus
the two deployment operations.
"""

from typing import List, Optional

import boto3
from botocore.config import Config

from provisioner.cidr_allocator import find_overlaps, require_valid_cidr
from provisioner.cloudformation_utils import CloudFormationManager
from provisioner.config import ProvisionerConfig
from provisioner.constants import CLUSTER_NAME_MAX_LENGTH
from provisioner.database import create_session_factory
from provisioner.exceptions import (
    CidrOverlapError,
    ForbiddenError,
    ProvisionerError,
    ValidationError,
)
from provisioner.logger import DeployLogger
from provisioner.models.cluster import (
    ClusterRecord,
    ClusterSnapshot,
    ClusterStatus,
    ClusterType,
)
from provisioner.models.deployment import DeploymentOutcome
from provisioner.models.requests import DelegationRequest, DeploymentOverrides
from provisioner.models.results import ValidationResult
from provisioner.services.cluster_store import ClusterStore
from provisioner.services.credential_service import CredentialDelegationManager
from provisioner.services.deployment_service import DeploymentOrchestrator
from provisioner.services.parameter_builder import ParameterBuilder
from provisioner.services.reconciler import StatusReconciler
from provisioner.template_resolver import TemplateResolver
from provisioner.utils import new_correlation_id, with_correlation


class ClusterService:
    """
    Cluster operations.

    Responsibilities:
    - Create (CIDR validation and overlap check), list, get, delete
    - Initiate and update deployments
    - Refresh status from the engine
    - Trial role assumption for cross-account targets
    """

    def __init__(
        self,
        store: ClusterStore,
        orchestrator: DeploymentOrchestrator,
        reconciler: StatusReconciler,
        logger: DeployLogger,
        credentials: Optional[CredentialDelegationManager] = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.reconciler = reconciler
        self.logger = logger
        self.credentials = credentials

    @classmethod
    def from_config(
        cls,
        config: ProvisionerConfig,
        logger: DeployLogger,
        region: Optional[str] = None,
    ) -> "ClusterService":
        """
        Wire every collaborator from configuration.

        Args:
            config: Provisioner configuration
            logger: Logger for this operation
            region: Region for AWS clients (defaults to config.aws_region)
        """
        region = region or config.aws_region
        boto_config = Config(
            retries={"max_attempts": config.aws_max_attempts, "mode": "standard"}
        )

        store = ClusterStore(create_session_factory(config.database_url))
        engine = CloudFormationManager(region, max_attempts=config.aws_max_attempts)
        resolver = TemplateResolver(
            config.template_bucket,
            config.aws_region,
            key_prefix=config.template_key_prefix,
            max_attempts=config.aws_max_attempts,
        )
        credentials = CredentialDelegationManager(
            boto3.client("sts", region_name=region, config=boto_config),
            logger,
            allowed_account_ids=config.allowed_account_ids,
            require_external_id=config.require_external_id,
            max_session_duration=config.max_session_duration,
        )

        orchestrator = DeploymentOrchestrator(
            store, engine, resolver, ParameterBuilder(config), logger, credentials
        )
        reconciler = StatusReconciler(store, engine, logger, credentials)
        return cls(store, orchestrator, reconciler, logger, credentials)

    def create_cluster(
        self,
        name: str,
        cluster_type: str,
        environment: str,
        region: str,
        cidr: str,
        correlation_id: Optional[str] = None,
    ) -> ClusterRecord:
        """
        Register a new cluster in the In-Active state.

        Raises:
            ValidationError: If the name, type or CIDR is invalid
            CidrOverlapError: If the CIDR overlaps a cluster in the same region
        """
        correlation_id = correlation_id or new_correlation_id()

        try:
            if not name or not name.strip():
                raise ValidationError("Cluster name is required")
            if len(name.strip()) > CLUSTER_NAME_MAX_LENGTH:
                raise ValidationError(
                    "Cluster name is too long",
                    context=f"At most {CLUSTER_NAME_MAX_LENGTH} characters",
                )
            if not environment or not region:
                raise ValidationError("Cluster environment and region are required")
            try:
                kind = ClusterType(cluster_type)
            except ValueError:
                raise ValidationError(
                    f"Invalid cluster type: {cluster_type}",
                    context="Must be 'dedicated' or 'shared'",
                )

            network = str(require_valid_cidr(cidr))
            overlapping = find_overlaps(network, self.store.live_cidrs(region))
            if overlapping:
                raise CidrOverlapError(network, overlapping)

            record = self.store.create(name.strip(), kind, environment, region, network)
        except ProvisionerError as e:
            raise with_correlation(e, correlation_id)

        self.logger.audit(
            "cluster.created",
            correlation_id=correlation_id,
            cluster_id=record.cluster_id,
            cidr=record.cidr,
            region=record.region,
        )
        return record

    def list_clusters(
        self, region: Optional[str] = None, cluster_type: Optional[str] = None
    ) -> List[ClusterRecord]:
        return self.store.list(region=region, cluster_type=cluster_type)

    def get_cluster(self, cluster_id: str) -> ClusterRecord:
        """
        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        return self.store.get(cluster_id)

    def delete_cluster(
        self, cluster_id: str, correlation_id: Optional[str] = None
    ) -> None:
        """
        Delete a cluster that was never deployed.

        Raises:
            ClusterNotFoundError: If the cluster does not exist
            ForbiddenError: If the cluster is not In-Active
        """
        correlation_id = correlation_id or new_correlation_id()
        try:
            cluster = self.store.get(cluster_id)
            if not cluster.can_delete:
                raise ForbiddenError(
                    f"Cluster '{cluster_id}' cannot be deleted in status "
                    f"'{cluster.status.value}'",
                    context="Only In-Active clusters can be deleted",
                )
            self.store.delete(cluster_id, expected_status=ClusterStatus.IN_ACTIVE)
        except ProvisionerError as e:
            raise with_correlation(e, correlation_id)

        self.logger.audit(
            "cluster.deleted", correlation_id=correlation_id, cluster_id=cluster_id
        )

    def initiate_deployment(
        self,
        cluster_id: str,
        overrides: Optional[DeploymentOverrides] = None,
        delegation: Optional[DelegationRequest] = None,
        correlation_id: Optional[str] = None,
    ) -> DeploymentOutcome:
        """Start a deployment (create, or update when a stack exists)."""
        return self.orchestrator.deploy(
            cluster_id, overrides, delegation, correlation_id=correlation_id
        )

    def update_deployment(
        self,
        cluster_id: str,
        overrides: Optional[DeploymentOverrides] = None,
        delegation: Optional[DelegationRequest] = None,
        correlation_id: Optional[str] = None,
    ) -> DeploymentOutcome:
        """Update the stack of a cluster that was already deployed."""
        return self.orchestrator.update(
            cluster_id, overrides, delegation, correlation_id=correlation_id
        )

    def refresh_status(
        self,
        cluster_id: str,
        include_events: bool = False,
        delegation: Optional[DelegationRequest] = None,
        correlation_id: Optional[str] = None,
    ) -> ClusterSnapshot:
        """Reconcile and return the cluster's current state."""
        return self.reconciler.reconcile(
            cluster_id,
            delegation=delegation,
            include_events=include_events,
            correlation_id=correlation_id,
        )

    def validate_delegation(
        self,
        delegation: DelegationRequest,
        correlation_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check that a cross-account role can be assumed, without deploying.

        Raises:
            ValidationError: If cross-account access is not configured
        """
        correlation_id = correlation_id or new_correlation_id()
        if self.credentials is None:
            raise ValidationError(
                "Cross-account access is not configured",
                correlation_id=correlation_id,
            )
        return self.credentials.validate_role(
            delegation.target_account_id,
            delegation.role_name,
            external_id=delegation.external_id,
            session_name="cluster-role-check",
            correlation_id=correlation_id,
        )
