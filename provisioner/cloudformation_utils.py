"""
CloudFormation Utilities

Stack operations manager with type-safe models and error handling.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from provisioner.constants import DEFAULT_AWS_MAX_ATTEMPTS, RECENT_EVENTS_LIMIT
from provisioner.exceptions import CloudFormationError, StackNotFoundError
from provisioner.models.deployment import (
    DeploymentOperation,
    DeploymentParameters,
    DeploymentSession,
    StackDescription,
    StackOperationResult,
)


class StackCategory(Enum):
    """Coarse outcome of a stack status code."""

    SUCCESS = "success"
    FAILURE = "failure"
    IN_PROGRESS = "in_progress"


SUCCESS_STATUSES = frozenset({"CREATE_COMPLETE", "UPDATE_COMPLETE", "IMPORT_COMPLETE"})

FAILURE_STATUSES = frozenset(
    {
        "CREATE_FAILED",
        "UPDATE_FAILED",
        "DELETE_FAILED",
        "ROLLBACK_FAILED",
        "ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
        "UPDATE_ROLLBACK_COMPLETE",
        "DELETE_COMPLETE",
        "IMPORT_ROLLBACK_FAILED",
        "IMPORT_ROLLBACK_COMPLETE",
    }
)

IN_PROGRESS_STATUSES = frozenset(
    {
        "CREATE_IN_PROGRESS",
        "UPDATE_IN_PROGRESS",
        "DELETE_IN_PROGRESS",
        "ROLLBACK_IN_PROGRESS",
        "UPDATE_ROLLBACK_IN_PROGRESS",
        "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
        "IMPORT_IN_PROGRESS",
        "IMPORT_ROLLBACK_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    }
)

NO_UPDATES_MESSAGE = "No updates are to be performed"


def classify_status(status: Optional[str]) -> StackCategory:
    """
    Map a stack status code to its category.

    Exact match only. Codes not in the success or failure tables,
    including unknown ones, count as in progress.
    """
    if status in SUCCESS_STATUSES:
        return StackCategory.SUCCESS
    if status in FAILURE_STATUSES:
        return StackCategory.FAILURE
    return StackCategory.IN_PROGRESS


class CloudFormationManager:
    """
    Manages CloudFormation operations with clean interfaces.

    Responsibilities:
    - Create/update stacks
    - Stack status and output queries
    - Recent stack events
    - Per-call clients for delegated sessions
    """

    def __init__(
        self,
        region: str,
        max_attempts: int = DEFAULT_AWS_MAX_ATTEMPTS,
        client: Any = None,
    ):
        """
        Initialize CloudFormation manager.

        Args:
            region: Default AWS region (calls may name another)
            max_attempts: Transport retry bound (standard retry mode)
            client: Pre-built own-account client for the default region
        """
        self.region = region
        self.boto_config = Config(
            retries={"max_attempts": max_attempts, "mode": "standard"}
        )
        # Own-account clients by region
        self._clients: Dict[str, Any] = {}
        if client is not None:
            self._clients[region] = client

    def _client(
        self,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
    ) -> Any:
        """Client for a delegated session, or the cached own-account client."""
        region = region or self.region
        if session is not None:
            # Delegated clients are never cached
            return boto3.Session(**session.credentials(), region_name=region).client(
                "cloudformation", config=self.boto_config
            )

        if region not in self._clients:
            self._clients[region] = boto3.client(
                "cloudformation", region_name=region, config=self.boto_config
            )
        return self._clients[region]

    def _call(self, action: str, method: Callable, stack: str, **kwargs) -> Dict:
        """
        Run a CloudFormation API call.

        Raises:
            StackNotFoundError: If the stack does not exist
            CloudFormationError: On any other API or transport failure
        """
        try:
            return method(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise _translate_error(action, stack, e)

    def create_stack(
        self,
        params: DeploymentParameters,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
    ) -> StackOperationResult:
        """
        Start stack creation.

        Returns:
            StackOperationResult with the new stack ARN

        Raises:
            CloudFormationError: If the call fails
        """
        client = self._client(session, region)
        response = self._call(
            "create_stack",
            client.create_stack,
            params.stack_name,
            StackName=params.stack_name,
            TemplateURL=params.template_url,
            Parameters=params.parameters,
            Tags=params.tags,
            Capabilities=params.capabilities,
            TimeoutInMinutes=params.timeout_in_minutes,
            EnableTerminationProtection=params.enable_termination_protection,
        )
        return StackOperationResult(
            stack_id=response["StackId"],
            stack_name=params.stack_name,
            status="CREATE_IN_PROGRESS",
            operation=DeploymentOperation.CREATE,
        )

    def update_stack(
        self,
        params: DeploymentParameters,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
    ) -> StackOperationResult:
        """
        Start a stack update.

        When the engine reports nothing to change, the stack's current
        status is returned instead of an error.

        Raises:
            StackNotFoundError: If the stack does not exist
            CloudFormationError: If the call fails
        """
        client = self._client(session, region)
        try:
            response = client.update_stack(
                StackName=params.stack_name,
                TemplateURL=params.template_url,
                Parameters=params.parameters,
                Tags=params.tags,
                Capabilities=params.capabilities,
            )
        except ClientError as e:
            if NO_UPDATES_MESSAGE in e.response.get("Error", {}).get("Message", ""):
                current = self.describe_stack(params.stack_name, session, region)
                return StackOperationResult(
                    stack_id=current.stack_id,
                    stack_name=params.stack_name,
                    status=current.status,
                    operation=DeploymentOperation.UPDATE,
                )
            raise _translate_error("update_stack", params.stack_name, e)
        except BotoCoreError as e:
            raise _translate_error("update_stack", params.stack_name, e)

        return StackOperationResult(
            stack_id=response["StackId"],
            stack_name=params.stack_name,
            status="UPDATE_IN_PROGRESS",
            operation=DeploymentOperation.UPDATE,
        )

    def create_or_update_stack(
        self,
        params: DeploymentParameters,
        update: bool,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
    ) -> StackOperationResult:
        """Create a new stack, or update the existing one when update is True."""
        if update:
            return self.update_stack(params, session, region)
        return self.create_stack(params, session, region)

    def describe_stack(
        self,
        stack_id: str,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
    ) -> StackDescription:
        """
        Get current stack status and outputs.

        Args:
            stack_id: Stack ARN or name

        Returns:
            StackDescription with outputs as an OutputKey -> OutputValue map

        Raises:
            StackNotFoundError: If the stack does not exist
            CloudFormationError: If the call fails
        """
        client = self._client(session, region)
        response = self._call(
            "describe_stacks", client.describe_stacks, stack_id, StackName=stack_id
        )

        stacks = response.get("Stacks", [])
        if not stacks:
            raise StackNotFoundError(stack_id)

        stack = stacks[0]
        outputs = {
            output["OutputKey"]: output.get("OutputValue", "")
            for output in stack.get("Outputs", [])
        }
        return StackDescription(
            stack_id=stack.get("StackId", stack_id),
            stack_name=stack["StackName"],
            status=stack["StackStatus"],
            outputs=outputs,
            status_reason=stack.get("StackStatusReason"),
        )

    def list_stack_events(
        self,
        stack_id: str,
        session: Optional[DeploymentSession] = None,
        region: Optional[str] = None,
        limit: int = RECENT_EVENTS_LIMIT,
    ) -> List[Dict[str, Any]]:
        """
        Get the most recent stack events, newest first.

        Returns:
            List of event dicts (timestamp, resource_type, logical_resource_id,
            resource_status, resource_status_reason)

        Raises:
            StackNotFoundError: If the stack does not exist
            CloudFormationError: If the call fails
        """
        client = self._client(session, region)
        response = self._call(
            "describe_stack_events",
            client.describe_stack_events,
            stack_id,
            StackName=stack_id,
        )

        events = []
        for event in response.get("StackEvents", [])[:limit]:
            timestamp = event.get("Timestamp")
            events.append(
                {
                    "timestamp": timestamp.isoformat() if timestamp else None,
                    "resource_type": event.get("ResourceType"),
                    "logical_resource_id": event.get("LogicalResourceId"),
                    "resource_status": event.get("ResourceStatus"),
                    "resource_status_reason": event.get("ResourceStatusReason"),
                }
            )
        return events


def _translate_error(action: str, stack: str, error: Exception) -> Exception:
    """Map a botocore failure to StackNotFoundError or CloudFormationError."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        message = details.get("Message", "")
        if details.get("Code") == "ValidationError" and "does not exist" in message:
            return StackNotFoundError(stack)
        return CloudFormationError(
            f"CloudFormation {action} failed for stack {stack}",
            context=f"{details.get('Code', 'Unknown')}: {message}",
        )
    return CloudFormationError(
        f"CloudFormation {action} failed for stack {stack}",
        context=str(error),
    )
