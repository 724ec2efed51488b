"""
Deployment Models

Dataclass models for stack deployments and delegated sessions.
None of these are persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


class DeploymentOperation(Enum):
    """Which engine operation a deployment attempt used."""

    CREATE = "create"
    UPDATE = "update"


@dataclass
class DeploymentSession:
    """Short-lived credentials for acting in another account."""

    account_id: str
    role_arn: str
    session_name: str
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime
    assumed_role_id: str = ""
    assumed_role_arn: str = ""
    correlation_id: str = ""

    def credentials(self) -> Dict[str, str]:
        """Keyword arguments for boto3.Session."""
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "aws_session_token": self.session_token,
        }

    def __repr__(self) -> str:
        # Never render key material
        return (
            f"DeploymentSession(account={self.account_id}, role={self.role_arn}, "
            f"expires={self.expiration.isoformat()})"
        )


@dataclass
class DeploymentParameters:
    """Everything the engine needs for one create/update call."""

    stack_name: str
    template_url: str
    parameters: List[Dict[str, str]] = field(default_factory=list)
    tags: List[Dict[str, str]] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)
    timeout_in_minutes: int = 60
    enable_termination_protection: bool = True

    def parameter_value(self, key: str) -> Optional[str]:
        """Last value supplied for a parameter key (engine resolution order)."""
        value = None
        for parameter in self.parameters:
            if parameter["ParameterKey"] == key:
                value = parameter["ParameterValue"]
        return value

    def tag_value(self, key: str) -> Optional[str]:
        """Last value supplied for a tag key."""
        value = None
        for tag in self.tags:
            if tag["Key"] == key:
                value = tag["Value"]
        return value


@dataclass
class StackOperationResult:
    """Result of a create/update call."""

    stack_id: str
    stack_name: str
    status: str
    operation: DeploymentOperation


@dataclass
class StackDescription:
    """Current state of a stack as reported by the engine."""

    stack_id: str
    stack_name: str
    status: str
    outputs: Dict[str, str] = field(default_factory=dict)
    status_reason: Optional[str] = None


@dataclass
class DeploymentOutcome:
    """What a deploy/update request returns to its caller."""

    cluster_id: str
    deployment_id: str
    stack_name: str
    status: str
    cluster_status: str
    template_url: str
    operation: DeploymentOperation
    initiated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "cluster_id": self.cluster_id,
            "deployment_id": self.deployment_id,
            "stack_name": self.stack_name,
            "status": self.status,
            "cluster_status": self.cluster_status,
            "template_url": self.template_url,
            "operation": self.operation.value,
            "initiated_at": self.initiated_at.isoformat(),
        }
