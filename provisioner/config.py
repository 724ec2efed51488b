"""Configuration management for the provisioner"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import dotenv_values

from provisioner.constants import (
    ACCOUNT_ID_PATTERN,
    DEFAULT_AWS_MAX_ATTEMPTS,
    DEFAULT_AWS_REGION,
    DEFAULT_DATABASE_URL,
    DEFAULT_MANAGED_BY,
    DEFAULT_SESSION_DURATION,
    DEFAULT_STACK_NAME_PREFIX,
    STS_MAX_SESSION_DURATION,
    STS_MIN_SESSION_DURATION,
)
from provisioner.exceptions import ConfigurationError

# Environment variable -> config field
ENV_MAPPING = {
    "PROVISIONER_DB_URL": "database_url",
    "AWS_REGION": "aws_region",
    "TEMPLATE_BUCKET": "template_bucket",
    "TEMPLATE_KEY_PREFIX": "template_key_prefix",
    "STACK_NAME_PREFIX": "stack_name_prefix",
    "ALLOWED_ACCOUNT_IDS": "allowed_account_ids",
    "REQUIRE_EXTERNAL_ID": "require_external_id",
    "MAX_SESSION_DURATION": "max_session_duration",
    "AWS_MAX_ATTEMPTS": "aws_max_attempts",
    "PROVISIONER_LOGS_DIR": "logs_dir",
    "MANAGED_BY": "managed_by",
}


@dataclass
class ProvisionerConfig:
    """Runtime configuration for the control plane"""

    database_url: str = DEFAULT_DATABASE_URL
    aws_region: str = DEFAULT_AWS_REGION
    template_bucket: str = ""
    template_key_prefix: str = ""
    stack_name_prefix: str = DEFAULT_STACK_NAME_PREFIX
    allowed_account_ids: List[str] = field(default_factory=list)
    require_external_id: bool = True
    max_session_duration: int = DEFAULT_SESSION_DURATION
    aws_max_attempts: int = DEFAULT_AWS_MAX_ATTEMPTS
    logs_dir: Optional[str] = None
    managed_by: str = DEFAULT_MANAGED_BY

    def __post_init__(self):
        self._apply_defaults()
        self._validate()

    def _apply_defaults(self) -> None:
        """Normalize loosely typed values (env vars arrive as strings)"""
        if isinstance(self.allowed_account_ids, str):
            self.allowed_account_ids = [
                account.strip()
                for account in self.allowed_account_ids.split(",")
                if account.strip()
            ]
        else:
            self.allowed_account_ids = [str(a) for a in self.allowed_account_ids]

        if isinstance(self.require_external_id, str):
            self.require_external_id = self.require_external_id.strip().lower() in (
                "1",
                "true",
                "yes",
                "on",
            )

        try:
            self.max_session_duration = int(self.max_session_duration)
            self.aws_max_attempts = int(self.aws_max_attempts)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "Numeric configuration value is not an integer", context=str(e)
            )

        self.template_key_prefix = self.template_key_prefix.strip("/")

    def _validate(self) -> None:
        """Validate configuration values"""
        errors = []

        for account_id in self.allowed_account_ids:
            if not re.match(ACCOUNT_ID_PATTERN, account_id):
                errors.append(f"Invalid account id in allow-list: {account_id}")

        if not (
            STS_MIN_SESSION_DURATION
            <= self.max_session_duration
            <= STS_MAX_SESSION_DURATION
        ):
            errors.append(
                f"max_session_duration must be between {STS_MIN_SESSION_DURATION} "
                f"and {STS_MAX_SESSION_DURATION} seconds"
            )

        if self.aws_max_attempts < 1:
            errors.append("aws_max_attempts must be at least 1")

        if not self.stack_name_prefix:
            errors.append("stack_name_prefix must not be empty")

        if errors:
            raise ConfigurationError(
                "Invalid provisioner configuration", context="; ".join(errors)
            )

    @property
    def logs_path(self) -> Optional[Path]:
        """Logs directory as a Path, if configured."""
        return Path(self.logs_dir) if self.logs_dir else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(
    env_file: Optional[Path] = None,
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProvisionerConfig:
    """
    Load configuration.

    Precedence (lowest to highest): defaults, YAML file, .env file,
    process environment.

    Args:
        env_file: Optional .env file path
        config_file: Optional YAML file (defaults to $PROVISIONER_CONFIG)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        ProvisionerConfig

    Raises:
        ConfigurationError: If a file cannot be read or values are invalid
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    config_path = config_file or environ.get("PROVISIONER_CONFIG")
    if config_path:
        values.update(_load_yaml(Path(config_path)))

    if env_file:
        values.update(_from_env(dotenv_values(env_file)))

    values.update(_from_env(environ))

    known = {f.name for f in fields(ProvisionerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(
            "Unknown configuration keys", context=", ".join(unknown)
        )

    return ProvisionerConfig(**values)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping: {path}",
            context=f"Got {type(data).__name__}",
        )
    return data


def _from_env(env: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    values = {}
    for env_key, field_name in ENV_MAPPING.items():
        value = env.get(env_key)
        if value is not None and value != "":
            values[field_name] = value
    return values
