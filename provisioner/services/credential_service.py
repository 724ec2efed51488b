"""
Credential Delegation Service

Short-lived cross-account credentials through STS, with an audit trail.
"""

import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from provisioner.constants import (
    ACCOUNT_ID_PATTERN,
    DEFAULT_SESSION_DURATION,
    SESSION_NAME_MAX_LENGTH,
    STS_MIN_SESSION_DURATION,
)
from provisioner.exceptions import DelegationError
from provisioner.logger import DeployLogger
from provisioner.models.deployment import DeploymentSession
from provisioner.models.results import ValidationResult

# Characters STS accepts in a role session name
_SESSION_NAME_INVALID = re.compile(r"[^\w+=,.@-]")


def new_correlation_token() -> str:
    """Token tying together the audit entries of one assumption."""
    return f"delegation-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class CredentialDelegationManager:
    """
    Obtains delegated credentials for a target account.

    Responsibilities:
    - Allow-list and external-id policy
    - Role assumption with clamped duration
    - Audit entries for every attempt
    - Session expiry checks (no automatic refresh)

    Never touches persisted cluster state.
    """

    def __init__(
        self,
        sts_client: Any,
        logger: DeployLogger,
        allowed_account_ids: Iterable[str] = (),
        require_external_id: bool = True,
        max_session_duration: int = DEFAULT_SESSION_DURATION,
    ):
        """
        Initialize delegation manager.

        Args:
            sts_client: boto3 STS client for the control plane's own account
            logger: Logger receiving audit entries
            allowed_account_ids: Accounts that may be targeted
            require_external_id: Reject assumptions without an external id
            max_session_duration: Upper bound for session duration (seconds)
        """
        self.sts_client = sts_client
        self.logger = logger
        self.allowed_account_ids = frozenset(allowed_account_ids)
        self.require_external_id = require_external_id
        self.max_session_duration = max_session_duration

    @staticmethod
    def role_arn(account_id: str, role_name: str) -> str:
        """
        Build an IAM role ARN.

        Raises:
            DelegationError: If the account id is not 12 digits
        """
        if not re.match(ACCOUNT_ID_PATTERN, account_id or ""):
            raise DelegationError(
                "Invalid AWS account ID format", context=f"Got: {account_id!r}"
            )
        return f"arn:aws:iam::{account_id}:role/{role_name}"

    def check_policy(
        self,
        target_account: str,
        external_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """
        Apply the delegation policy without contacting STS.

        Raises:
            DelegationError: If the account is malformed or not allowed,
                or an external id is required but absent
        """
        if not re.match(ACCOUNT_ID_PATTERN, target_account or ""):
            raise DelegationError(
                "Invalid AWS account ID format",
                context=f"Got: {target_account!r}",
                correlation_id=correlation_id,
            )

        if target_account not in self.allowed_account_ids:
            raise DelegationError(
                f"Target account {target_account} is not in the allowed accounts list",
                correlation_id=correlation_id,
            )

        if self.require_external_id and not external_id:
            raise DelegationError(
                "External ID is required for cross-account role assumption",
                correlation_id=correlation_id,
            )

    def clamp_duration(self, duration: int) -> int:
        """Clamp a requested duration to [STS minimum, configured maximum]."""
        return max(STS_MIN_SESSION_DURATION, min(duration, self.max_session_duration))

    def assume(
        self,
        target_account: str,
        role_name: str,
        external_id: Optional[str] = None,
        session_name: str = "provisioner",
        duration: int = DEFAULT_SESSION_DURATION,
        correlation_id: Optional[str] = None,
    ) -> DeploymentSession:
        """
        Assume a role in the target account.

        Args:
            target_account: 12-digit AWS account id
            role_name: Role to assume in that account
            external_id: External id expected by the role's trust policy
            session_name: Role session name (truncated to STS limits)
            duration: Requested session length in seconds
            correlation_id: Caller's request correlation id

        Returns:
            DeploymentSession owned by the caller

        Raises:
            DelegationError: On policy rejection or STS failure
        """
        token = new_correlation_token()
        role_arn = None
        source = {}

        try:
            self.check_policy(target_account, external_id, correlation_id)
            role_arn = self.role_arn(target_account, role_name)
            source = self._caller_identity(correlation_id)

            session_name = _clean_session_name(session_name)
            params = {
                "RoleArn": role_arn,
                "RoleSessionName": session_name,
                "DurationSeconds": self.clamp_duration(duration),
            }
            if external_id:
                params["ExternalId"] = external_id

            try:
                response = self.sts_client.assume_role(**params)
            except (ClientError, BotoCoreError) as e:
                raise DelegationError(
                    f"Failed to assume role {role_arn}",
                    context=str(e),
                    correlation_id=correlation_id,
                )

            credentials = response.get("Credentials")
            assumed_user = response.get("AssumedRoleUser")
            if not credentials or not assumed_user:
                raise DelegationError(
                    "Failed to assume role: no credentials returned",
                    context=f"Role: {role_arn}",
                    correlation_id=correlation_id,
                )
        except DelegationError as e:
            self.logger.audit(
                "delegation.failed",
                correlation_id=correlation_id,
                delegation_token=token,
                source_account=source.get("Account"),
                source_arn=source.get("Arn"),
                target_account=target_account,
                role_arn=role_arn,
                reason=e.message,
            )
            raise

        session = DeploymentSession(
            account_id=target_account,
            role_arn=role_arn,
            session_name=session_name,
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials["Expiration"],
            assumed_role_id=assumed_user.get("AssumedRoleId", ""),
            assumed_role_arn=assumed_user.get("Arn", ""),
            correlation_id=token,
        )

        self.logger.audit(
            "delegation.assumed",
            correlation_id=correlation_id,
            delegation_token=token,
            source_account=source.get("Account"),
            source_arn=source.get("Arn"),
            target_account=target_account,
            role_arn=role_arn,
            assumed_role_arn=session.assumed_role_arn,
            expiration=session.expiration,
        )
        return session

    def validate_role(
        self,
        target_account: str,
        role_name: str,
        external_id: Optional[str] = None,
        session_name: str = "provisioner",
        correlation_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check that a role can be assumed, using a minimum-length session.

        Returns:
            ValidationResult; never raises for delegation failures
        """
        result = ValidationResult(subject=f"{target_account}/{role_name}")
        try:
            session = self.assume(
                target_account,
                role_name,
                external_id=external_id,
                session_name=f"{session_name}-validation",
                duration=STS_MIN_SESSION_DURATION,
                correlation_id=correlation_id,
            )
        except DelegationError as e:
            result.add_error(e.message)
        else:
            result.expires_at = session.expiration
        return result

    @staticmethod
    def is_valid(session: DeploymentSession, now: Optional[datetime] = None) -> bool:
        """Check if a session has not yet expired."""
        return CredentialDelegationManager.time_remaining(session, now) > 0

    @staticmethod
    def time_remaining(session: DeploymentSession, now: Optional[datetime] = None) -> int:
        """Seconds until the session expires, never negative."""
        now = now or datetime.now(timezone.utc)
        expiration = session.expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return max(0, int((expiration - now).total_seconds()))

    def _caller_identity(self, correlation_id: Optional[str]) -> dict:
        try:
            return self.sts_client.get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise DelegationError(
                "Unable to determine current AWS identity",
                context=str(e),
                correlation_id=correlation_id,
            )


def _clean_session_name(name: str) -> str:
    cleaned = _SESSION_NAME_INVALID.sub("-", name)[:SESSION_NAME_MAX_LENGTH]
    # STS requires at least two characters
    return cleaned if len(cleaned) >= 2 else "provisioner"
