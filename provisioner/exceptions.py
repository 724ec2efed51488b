"""
Provisioner Exception Hierarchy

Clean exception hierarchy for consistent error handling across the control plane.
Every error carries an explicit ErrorKind so callers branch on the kind,
never on message text.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(Enum):
    """Stable error kinds surfaced to callers."""

    VALIDATION = "ValidationError"
    CONFLICT = "Conflict"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INTERNAL = "InternalError"


class ProvisionerError(Exception):
    """Base exception for all provisioner errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ):
        self.message = message
        self.context = context
        self.correlation_id = correlation_id
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Caller-facing representation.

        Context is deliberately left out: it may hold raw exception text
        from boto3 or the database and is only written to the log.
        """
        return {
            "error": self.kind.value,
            "message": self.message,
            "correlation_id": self.correlation_id,
        }


class ValidationError(ProvisionerError):
    """Raised when a CIDR block or deployment parameter is malformed."""

    kind = ErrorKind.VALIDATION


class ConflictError(ProvisionerError):
    """Raised when a request collides with current state."""

    kind = ErrorKind.CONFLICT


class CidrOverlapError(ConflictError):
    """Raised when a CIDR block intersects blocks already assigned."""

    def __init__(
        self,
        cidr: str,
        overlapping: list[str],
        correlation_id: Optional[str] = None,
    ):
        self.cidr = cidr
        self.overlapping = overlapping
        message = f"CIDR {cidr} overlaps with existing cluster networks"
        context = f"Overlapping: {', '.join(overlapping)}"
        super().__init__(message, context, correlation_id)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["overlaps"] = list(self.overlapping)
        return data


class DeploymentInProgressError(ConflictError):
    """Raised when a deploy or update is requested while already Deploying."""

    def __init__(self, cluster_id: str, correlation_id: Optional[str] = None):
        self.cluster_id = cluster_id
        message = f"Cluster '{cluster_id}' deployment already in progress"
        context = "Wait for the current deployment to finish, then retry"
        super().__init__(message, context, correlation_id)


class NotFoundError(ProvisionerError):
    """Raised when a requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class ClusterNotFoundError(NotFoundError):
    """Raised when no cluster record matches the identifier."""

    def __init__(self, cluster_id: str, correlation_id: Optional[str] = None):
        self.cluster_id = cluster_id
        super().__init__(
            f"Cluster '{cluster_id}' not found", correlation_id=correlation_id
        )


class StackNotFoundError(NotFoundError):
    """Raised by the engine client when a stack no longer exists."""

    def __init__(self, stack_id: str):
        self.stack_id = stack_id
        super().__init__(f"Stack '{stack_id}' does not exist")


class ForbiddenError(ProvisionerError):
    """Raised when an operation is not permitted in the cluster's state."""

    kind = ErrorKind.FORBIDDEN


class InternalError(ProvisionerError):
    """Raised when a remote call fails or something unexpected happens."""

    kind = ErrorKind.INTERNAL
    retryable = True


class DelegationError(InternalError):
    """Raised when a cross-account role cannot be assumed."""

    pass


class CloudFormationError(InternalError):
    """Raised when a CloudFormation API call fails."""

    pass


class TemplateNotFoundError(InternalError):
    """Raised when no infrastructure template exists for a cluster type."""

    def __init__(self, template_key: str, bucket: str):
        self.template_key = template_key
        self.bucket = bucket
        message = f"Template not found: {template_key}"
        context = f"Bucket: {bucket}"
        super().__init__(message, context)


class ConfigurationError(ProvisionerError):
    """Raised when configuration is invalid or missing."""

    kind = ErrorKind.VALIDATION
