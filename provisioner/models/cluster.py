"""
Cluster Models

Dataclass models for the cluster lifecycle.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum


class ClusterStatus(Enum):
    """Status of a cluster in its lifecycle."""

    IN_ACTIVE = "In-Active"
    DEPLOYING = "Deploying"
    ACTIVE = "Active"
    FAILED = "Failed"


class ClusterType(Enum):
    """Tenancy model of a cluster."""

    DEDICATED = "dedicated"
    SHARED = "shared"

    @property
    def display_name(self) -> str:
        """Title-cased name used in template parameters."""
        return self.value.capitalize()


# Statuses from which a new deploy/update may start
DEPLOYABLE_STATUSES = frozenset(
    {ClusterStatus.IN_ACTIVE, ClusterStatus.FAILED, ClusterStatus.ACTIVE}
)


@dataclass
class ClusterRecord:
    """Persisted state of a single cluster."""

    cluster_id: str
    name: str
    type: ClusterType
    environment: str
    region: str
    cidr: str
    status: ClusterStatus = ClusterStatus.IN_ACTIVE
    deployment_status: Optional[str] = None
    deployment_id: Optional[str] = None
    stack_outputs: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deployed_at: Optional[datetime] = None

    @property
    def is_deploying(self) -> bool:
        """Check if a deployment is in flight."""
        return self.status == ClusterStatus.DEPLOYING

    @property
    def can_deploy(self) -> bool:
        """Check if a deploy/update may start from the current status."""
        return self.status in DEPLOYABLE_STATUSES

    @property
    def can_delete(self) -> bool:
        """Only never-deployed clusters may be removed."""
        return self.status == ClusterStatus.IN_ACTIVE

    @property
    def has_deployment(self) -> bool:
        """Check if a stack has ever been created for this cluster."""
        return bool(self.deployment_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "cluster_id": self.cluster_id,
            "name": self.name,
            "type": self.type.value,
            "environment": self.environment,
            "region": self.region,
            "cidr": self.cidr,
            "status": self.status.value,
            "deployment_status": self.deployment_status,
            "deployment_id": self.deployment_id,
            "stack_outputs": dict(self.stack_outputs),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "deployed_at": _iso(self.deployed_at),
        }

    def __repr__(self) -> str:
        return f"ClusterRecord(id={self.cluster_id}, name={self.name}, status={self.status.value})"


@dataclass
class ClusterSnapshot:
    """Reconciled view of a cluster returned to status callers."""

    cluster_id: str
    cluster_status: ClusterStatus
    deployment_status: str
    deployment_id: Optional[str]
    stack_outputs: Dict[str, str] = field(default_factory=dict)
    last_updated: Optional[datetime] = None
    deployed_at: Optional[datetime] = None
    recent_events: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    stack_missing: bool = False
    changed: bool = False

    @property
    def is_active(self) -> bool:
        return self.cluster_status == ClusterStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            "cluster_id": self.cluster_id,
            "cluster_status": self.cluster_status.value,
            "deployment_status": self.deployment_status,
            "deployment_id": self.deployment_id,
            "stack_outputs": dict(self.stack_outputs),
            "last_updated": _iso(self.last_updated),
            "deployed_at": _iso(self.deployed_at),
        }
        if self.recent_events:
            data["recent_events"] = self.recent_events
        if self.error:
            data["error"] = self.error
        if self.stack_missing:
            data["stack_missing"] = True
        return data


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
