"""
Deployment Service

Drives a cluster from its current status into Deploying and starts the
create or update of its stack.
"""

from typing import Optional

from provisioner.cidr_allocator import allocate_subnets
from provisioner.cloudformation_utils import (
    CloudFormationManager,
    StackCategory,
    classify_status,
)
from provisioner.constants import (
    DEPLOYMENT_FAILED,
    DEPLOYMENT_INITIATED,
    UPDATE_FAILED,
)
from provisioner.exceptions import (
    ConflictError,
    DeploymentInProgressError,
    InternalError,
    ProvisionerError,
    ValidationError,
)
from provisioner.logger import DeployLogger
from provisioner.models.cluster import ClusterRecord, ClusterStatus
from provisioner.models.deployment import (
    DeploymentOperation,
    DeploymentOutcome,
    DeploymentSession,
)
from provisioner.models.requests import DelegationRequest, DeploymentOverrides
from provisioner.services.cluster_store import ClusterStore
from provisioner.services.credential_service import CredentialDelegationManager
from provisioner.services.parameter_builder import ParameterBuilder
from provisioner.template_resolver import TemplateResolver
from provisioner.utils import new_correlation_id, with_correlation


class DeploymentOrchestrator:
    """
    Starts stack deployments for clusters.

    State machine over cluster status:
        In-Active, Failed, Active -> Deploying   (this class)
        Deploying -> Deploying                   rejected, no remote call
        Deploying -> Failed                      remote call raised (this class)
                                                 or engine failure (reconciler)
        Deploying -> Active                      reconciler only

    Performs no retries; transport retries belong to the boto3 clients.
    """

    def __init__(
        self,
        store: ClusterStore,
        engine: CloudFormationManager,
        resolver: TemplateResolver,
        builder: ParameterBuilder,
        logger: DeployLogger,
        credentials: Optional[CredentialDelegationManager] = None,
    ):
        self.store = store
        self.engine = engine
        self.resolver = resolver
        self.builder = builder
        self.logger = logger
        self.credentials = credentials

    def deploy(
        self,
        cluster_id: str,
        overrides: Optional[DeploymentOverrides] = None,
        delegation: Optional[DelegationRequest] = None,
        correlation_id: Optional[str] = None,
    ) -> DeploymentOutcome:
        """
        Deploy a cluster: create its stack, or update it if one exists.

        Args:
            cluster_id: Cluster to deploy
            overrides: Extra parameters and tags
            delegation: Target account to deploy into, None for same-account
            correlation_id: Request correlation id

        Returns:
            DeploymentOutcome with the stack id and initial engine status

        Raises:
            ClusterNotFoundError: If the cluster does not exist
            ConflictError: If a deployment is already in progress
            ValidationError: If the cluster CIDR or its stack name is unusable
            InternalError: If delegation or the engine call fails (cluster marked Failed)
        """
        return self._run(
            cluster_id, overrides, delegation, correlation_id, require_existing=False
        )

    def update(
        self,
        cluster_id: str,
        overrides: Optional[DeploymentOverrides] = None,
        delegation: Optional[DelegationRequest] = None,
        correlation_id: Optional[str] = None,
    ) -> DeploymentOutcome:
        """
        Update an existing cluster stack.

        Same as deploy(), but the cluster must already have a deployment.

        Raises:
            ValidationError: If the cluster was never deployed
        """
        return self._run(
            cluster_id, overrides, delegation, correlation_id, require_existing=True
        )

    def _run(
        self,
        cluster_id: str,
        overrides: Optional[DeploymentOverrides],
        delegation: Optional[DelegationRequest],
        correlation_id: Optional[str],
        require_existing: bool,
    ) -> DeploymentOutcome:
        correlation_id = correlation_id or new_correlation_id()

        try:
            cluster = self.store.get(cluster_id)
            is_update = self._guard(cluster, delegation, require_existing, correlation_id)
            subnets = allocate_subnets(cluster.cidr)

            # Claim the cluster before any remote call
            self.store.compare_and_set(
                cluster_id,
                cluster.status,
                {
                    "status": ClusterStatus.DEPLOYING,
                    "deployment_status": DEPLOYMENT_INITIATED,
                },
            )
        except ProvisionerError as e:
            raise with_correlation(e, correlation_id)

        operation = DeploymentOperation.UPDATE if is_update else DeploymentOperation.CREATE
        self.logger.audit(
            "cluster.transition",
            correlation_id=correlation_id,
            cluster_id=cluster_id,
            from_status=cluster.status.value,
            to_status=ClusterStatus.DEPLOYING.value,
            operation=operation.value,
        )

        try:
            session = self._delegate(cluster, delegation, correlation_id)

            self.logger.step(f"Resolving {cluster.type.value} template")
            template = self.resolver.resolve(cluster.type)

            params = self.builder.build(
                cluster, subnets, overrides, template.url, update=is_update
            )

            self.logger.step(f"Starting stack {operation.value}: {params.stack_name}")
            result = self.engine.create_or_update_stack(
                params, update=is_update, session=session, region=cluster.region
            )
        except Exception as e:
            failed_code = UPDATE_FAILED if is_update else DEPLOYMENT_FAILED
            detail = e.format_message() if isinstance(e, ProvisionerError) else str(e)
            self.logger.log_error(f"Stack {operation.value} failed", context=detail)
            try:
                self.store.update(
                    cluster_id,
                    {"status": ClusterStatus.FAILED, "deployment_status": failed_code},
                )
            except ProvisionerError as store_error:
                # The engine failure is what the caller needs to see
                self.logger.log_error(
                    f"Could not mark cluster '{cluster_id}' as Failed",
                    context=store_error.format_message(),
                )
            else:
                self.logger.audit(
                    "cluster.transition",
                    correlation_id=correlation_id,
                    cluster_id=cluster_id,
                    from_status=ClusterStatus.DEPLOYING.value,
                    to_status=ClusterStatus.FAILED.value,
                    deployment_status=failed_code,
                )
            if isinstance(e, InternalError):
                raise with_correlation(e, correlation_id)
            raise InternalError(
                f"Stack {operation.value} failed for cluster '{cluster_id}'",
                context=detail,
                correlation_id=correlation_id,
            ) from e

        # The orchestrator never marks a cluster Active; that is left to reconciliation
        if classify_status(result.status) == StackCategory.FAILURE:
            new_status = ClusterStatus.FAILED
        else:
            new_status = ClusterStatus.DEPLOYING

        record = self.store.update(
            cluster_id,
            {
                "status": new_status,
                "deployment_id": result.stack_id,
                "deployment_status": result.status,
            },
        )
        self.logger.success(f"Stack {result.stack_name} {result.status}")
        if new_status != ClusterStatus.DEPLOYING:
            self.logger.audit(
                "cluster.transition",
                correlation_id=correlation_id,
                cluster_id=cluster_id,
                from_status=ClusterStatus.DEPLOYING.value,
                to_status=new_status.value,
                deployment_status=result.status,
            )

        return DeploymentOutcome(
            cluster_id=cluster_id,
            deployment_id=result.stack_id,
            stack_name=result.stack_name,
            status=result.status,
            cluster_status=record.status.value,
            template_url=params.template_url,
            operation=operation,
        )

    def _guard(
        self,
        cluster: ClusterRecord,
        delegation: Optional[DelegationRequest],
        require_existing: bool,
        correlation_id: str,
    ) -> bool:
        """
        Checks that must pass before any state change.

        Returns:
            True if this attempt updates an existing stack
        """
        if cluster.is_deploying:
            raise DeploymentInProgressError(cluster.cluster_id, correlation_id)

        if not cluster.can_deploy:
            raise ConflictError(
                f"Cluster status '{cluster.status.value}' is not deployable",
                correlation_id=correlation_id,
            )

        if require_existing and not cluster.has_deployment:
            raise ValidationError(
                f"Cluster '{cluster.cluster_id}' has no deployment to update",
                context="Deploy the cluster first",
                correlation_id=correlation_id,
            )

        # Stack names are checked here so a bad one never claims the cluster
        is_update = cluster.has_deployment
        if is_update:
            self.builder.stack_name_from_deployment_id(cluster.deployment_id)
        else:
            self.builder.stack_name_for_create(cluster)

        if delegation is not None:
            if self.credentials is None:
                raise ValidationError(
                    "Cross-account deployment is not configured",
                    correlation_id=correlation_id,
                )
            self.credentials.check_policy(
                delegation.target_account_id, delegation.external_id, correlation_id
            )

        return is_update

    def _delegate(
        self,
        cluster: ClusterRecord,
        delegation: Optional[DelegationRequest],
        correlation_id: str,
    ) -> Optional[DeploymentSession]:
        """Fresh delegated session for this one remote operation."""
        if delegation is None:
            return None

        self.logger.step(f"Assuming role in account {delegation.target_account_id}")
        return self.credentials.assume(
            delegation.target_account_id,
            delegation.role_name,
            external_id=delegation.external_id,
            session_name=f"cluster-deployment-{cluster.cluster_id[:8]}",
            correlation_id=correlation_id,
        )
