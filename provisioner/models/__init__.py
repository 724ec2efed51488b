"""
Provisioner Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .cluster import (
    ClusterStatus,
    ClusterType,
    ClusterRecord,
    ClusterSnapshot,
    DEPLOYABLE_STATUSES,
)
from .deployment import (
    DeploymentOperation,
    DeploymentSession,
    DeploymentParameters,
    StackOperationResult,
    StackDescription,
    DeploymentOutcome,
)
from .requests import (
    DelegationRequest,
    DeploymentOverrides,
    parse_overrides,
    parse_delegation,
)
from .results import ValidationResult

__all__ = [
    # Cluster
    "ClusterStatus",
    "ClusterType",
    "ClusterRecord",
    "ClusterSnapshot",
    "DEPLOYABLE_STATUSES",
    # Deployment
    "DeploymentOperation",
    "DeploymentSession",
    "DeploymentParameters",
    "StackOperationResult",
    "StackDescription",
    "DeploymentOutcome",
    # Requests
    "DelegationRequest",
    "DeploymentOverrides",
    "parse_overrides",
    "parse_delegation",
    # Results
    "ValidationResult",
]
