"""
Tests for configuration loading.
"""

import pytest
import yaml

from provisioner.config import ProvisionerConfig, load_config
from provisioner.exceptions import ConfigurationError


class TestLoadConfig:
    """Test configuration sources and precedence."""

    def test_defaults(self):
        config = load_config(environ={})

        assert config.aws_region == "us-east-1"
        assert config.stack_name_prefix == "control-plane"
        assert config.allowed_account_ids == []
        assert config.require_external_id is True
        assert config.max_session_duration == 3600

    def test_environment_values_are_coerced(self):
        config = load_config(
            environ={
                "ALLOWED_ACCOUNT_IDS": "123456789012, 210987654321",
                "REQUIRE_EXTERNAL_ID": "false",
                "MAX_SESSION_DURATION": "7200",
                "TEMPLATE_KEY_PREFIX": "/templates/",
            }
        )

        assert config.allowed_account_ids == ["123456789012", "210987654321"]
        assert config.require_external_id is False
        assert config.max_session_duration == 7200
        assert config.template_key_prefix == "templates"

    def test_precedence_yaml_then_env_file_then_environ(self, tmp_path):
        config_file = tmp_path / "provisioner.yml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "template_bucket": "from-yaml",
                    "aws_region": "eu-west-1",
                    "stack_name_prefix": "yaml-prefix",
                }
            )
        )
        env_file = tmp_path / ".env"
        env_file.write_text("TEMPLATE_BUCKET=from-dotenv\nAWS_REGION=eu-central-1\n")

        config = load_config(
            env_file=env_file,
            config_file=config_file,
            environ={"AWS_REGION": "ap-southeast-2"},
        )

        assert config.stack_name_prefix == "yaml-prefix"
        assert config.template_bucket == "from-dotenv"
        assert config.aws_region == "ap-southeast-2"

    def test_config_file_from_environment(self, tmp_path):
        config_file = tmp_path / "provisioner.yml"
        config_file.write_text("managed_by: Platform\n")

        config = load_config(environ={"PROVISIONER_CONFIG": str(config_file)})

        assert config.managed_by == "Platform"

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(config_file=tmp_path / "nope.yml", environ={})

    def test_unknown_yaml_key(self, tmp_path):
        config_file = tmp_path / "provisioner.yml"
        config_file.write_text("template_bukket: typo\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file=config_file, environ={})

        assert "template_bukket" in exc_info.value.context

    def test_non_mapping_yaml(self, tmp_path):
        config_file = tmp_path / "provisioner.yml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_config(config_file=config_file, environ={})


class TestValidation:
    """Test rejected configuration values."""

    def test_bad_account_id(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ProvisionerConfig(allowed_account_ids=["1234"])
        assert "1234" in exc_info.value.context

    @pytest.mark.parametrize("duration", [60, 50000])
    def test_session_duration_bounds(self, duration):
        with pytest.raises(ConfigurationError):
            ProvisionerConfig(max_session_duration=duration)

    def test_non_numeric_duration(self):
        with pytest.raises(ConfigurationError):
            ProvisionerConfig(max_session_duration="soon")

    def test_logs_path(self, tmp_path):
        config = ProvisionerConfig(logs_dir=str(tmp_path))
        assert config.logs_path == tmp_path
        assert ProvisionerConfig().logs_path is None
