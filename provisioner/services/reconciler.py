"""
Status Reconciler

Folds the engine's view of a cluster's stack back into the stored record.
Runs on demand only; there is no background polling.
"""

from datetime import datetime, timezone
from typing import Optional

from provisioner.cloudformation_utils import (
    CloudFormationManager,
    StackCategory,
    classify_status,
)
from provisioner.constants import NOT_DEPLOYED, STACK_NOT_FOUND, STATUS_CHECK_FAILED
from provisioner.exceptions import (
    InternalError,
    ProvisionerError,
    StackNotFoundError,
    ValidationError,
)
from provisioner.logger import DeployLogger
from provisioner.models.cluster import ClusterRecord, ClusterSnapshot, ClusterStatus
from provisioner.models.deployment import DeploymentSession
from provisioner.models.requests import DelegationRequest
from provisioner.services.cluster_store import ClusterStore
from provisioner.services.credential_service import CredentialDelegationManager
from provisioner.utils import new_correlation_id, with_correlation

CATEGORY_STATUS = {
    StackCategory.SUCCESS: ClusterStatus.ACTIVE,
    StackCategory.FAILURE: ClusterStatus.FAILED,
    StackCategory.IN_PROGRESS: ClusterStatus.DEPLOYING,
}


class StatusReconciler:
    """
    Reconciles stored cluster state with the engine.

    Responsibilities:
    - Classify stack status into the cluster lifecycle
    - Sticky deployed_at on first success
    - Write only when something changed
    - Flag stacks that vanished
    """

    def __init__(
        self,
        store: ClusterStore,
        engine: CloudFormationManager,
        logger: DeployLogger,
        credentials: Optional[CredentialDelegationManager] = None,
    ):
        self.store = store
        self.engine = engine
        self.logger = logger
        self.credentials = credentials

    def reconcile(
        self,
        cluster_id: str,
        delegation: Optional[DelegationRequest] = None,
        include_events: bool = False,
        correlation_id: Optional[str] = None,
    ) -> ClusterSnapshot:
        """
        Refresh a cluster's status from its stack.

        Args:
            cluster_id: Cluster to refresh
            delegation: Target account holding the stack, None for same-account
            include_events: Attach the most recent stack events
            correlation_id: Request correlation id

        Returns:
            ClusterSnapshot of the (possibly updated) record

        Raises:
            ClusterNotFoundError: If the cluster does not exist
            InternalError: If the engine or delegation call fails; the record
                is left untouched
        """
        correlation_id = correlation_id or new_correlation_id()

        try:
            cluster = self.store.get(cluster_id)
        except ProvisionerError as e:
            raise with_correlation(e, correlation_id)

        if not cluster.has_deployment:
            return self._snapshot(
                cluster,
                deployment_status=cluster.deployment_status or NOT_DEPLOYED,
            )

        try:
            session = self._delegate(cluster, delegation, correlation_id)
            description = self.engine.describe_stack(
                cluster.deployment_id, session, region=cluster.region
            )
            events = (
                self.engine.list_stack_events(
                    cluster.deployment_id, session, region=cluster.region
                )
                if include_events
                else []
            )
        except StackNotFoundError:
            return self._stack_missing(cluster, correlation_id)
        except ValidationError as e:
            raise with_correlation(e, correlation_id)
        except ProvisionerError as e:
            self.logger.log_error(
                f"Status check failed for cluster {cluster_id}",
                context=e.format_message(),
            )
            raise InternalError(
                f"Status check failed for cluster '{cluster_id}'",
                context=f"{STATUS_CHECK_FAILED}: {e.format_message()}",
                correlation_id=correlation_id,
            ) from e

        new_status = CATEGORY_STATUS[classify_status(description.status)]
        changed = (
            new_status != cluster.status
            or description.status != cluster.deployment_status
            or description.outputs != cluster.stack_outputs
        )

        record = cluster
        if changed:
            fields = {
                "status": new_status,
                "deployment_status": description.status,
                "stack_outputs": description.outputs,
            }
            # Sticky: only the first success stamps deployed_at
            if new_status == ClusterStatus.ACTIVE and cluster.deployed_at is None:
                fields["deployed_at"] = datetime.now(timezone.utc)
            record = self.store.update(cluster_id, fields)
            self._audit_transition(cluster, record, correlation_id)

        return self._snapshot(
            record,
            deployment_status=record.deployment_status,
            recent_events=events,
            changed=changed,
        )

    def _stack_missing(
        self, cluster: ClusterRecord, correlation_id: str
    ) -> ClusterSnapshot:
        """The stack is gone: a terminal anomaly, distinct from a failed deployment."""
        self.logger.warning(
            f"Stack {cluster.deployment_id} for cluster {cluster.cluster_id} no longer exists"
        )

        changed = (
            cluster.status != ClusterStatus.FAILED
            or cluster.deployment_status != STACK_NOT_FOUND
        )
        record = cluster
        if changed:
            record = self.store.update(
                cluster.cluster_id,
                {"status": ClusterStatus.FAILED, "deployment_status": STACK_NOT_FOUND},
            )
            self._audit_transition(cluster, record, correlation_id)

        return self._snapshot(
            record,
            deployment_status=STACK_NOT_FOUND,
            error=f"Stack {cluster.deployment_id} no longer exists",
            stack_missing=True,
            changed=changed,
        )

    def _delegate(
        self,
        cluster: ClusterRecord,
        delegation: Optional[DelegationRequest],
        correlation_id: str,
    ) -> Optional[DeploymentSession]:
        if delegation is None:
            return None
        if self.credentials is None:
            raise ValidationError("Cross-account status checks are not configured")

        return self.credentials.assume(
            delegation.target_account_id,
            delegation.role_name,
            external_id=delegation.external_id,
            session_name=f"cluster-status-{cluster.cluster_id[:8]}",
            correlation_id=correlation_id,
        )

    def _audit_transition(
        self, before: ClusterRecord, after: ClusterRecord, correlation_id: str
    ) -> None:
        if before.status == after.status:
            self.logger.log(
                f"Cluster {after.cluster_id} deployment status {after.deployment_status}",
                "DEBUG",
            )
            return
        self.logger.audit(
            "cluster.transition",
            correlation_id=correlation_id,
            cluster_id=after.cluster_id,
            from_status=before.status.value,
            to_status=after.status.value,
            deployment_status=after.deployment_status,
        )

    @staticmethod
    def _snapshot(
        record: ClusterRecord,
        deployment_status: Optional[str],
        recent_events=None,
        error: Optional[str] = None,
        stack_missing: bool = False,
        changed: bool = False,
    ) -> ClusterSnapshot:
        return ClusterSnapshot(
            cluster_id=record.cluster_id,
            cluster_status=record.status,
            deployment_status=deployment_status,
            deployment_id=record.deployment_id,
            stack_outputs=dict(record.stack_outputs),
            last_updated=record.updated_at,
            deployed_at=record.deployed_at,
            recent_events=list(recent_events or []),
            error=error,
            stack_missing=stack_missing,
            changed=changed,
        )
