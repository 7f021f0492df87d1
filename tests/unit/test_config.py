"""Unit tests for configuration management.

Tests cover configuration loading, validation, environment variable overrides,
and error handling.
"""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from intuit_cad.config import (
    APIConfig,
    Config,
    LoggingConfig,
    SAMLConfig,
    TransportConfig,
    load_config,
    require_credentials,
)
from intuit_cad.config.defaults import DEFAULT_CONFIG
from intuit_cad.config.manager import ENV_PREFIX
from intuit_cad.config.schema import DEFAULT_BASE_URL, DEFAULT_TOKEN_URL
from intuit_cad.utils.exceptions import ConfigurationError


def write_config(tmp_path: Path, data: dict) -> Path:
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(data), encoding="utf-8")
    return config_file


class TestConfigurationSchema:
    """Test pydantic configuration models validation."""

    def test_defaults(self) -> None:
        config = Config()

        assert config.saml.token_url == DEFAULT_TOKEN_URL
        assert config.api.base_url == DEFAULT_BASE_URL
        assert config.transport.timeout_read == 60
        assert config.logging.redact_secrets is True

    def test_invalid_token_url(self) -> None:
        """Test SAMLConfig rejects non-HTTP URLs."""
        with pytest.raises(ValidationError) as exc_info:
            SAMLConfig(token_url="ftp://oauth.test/token")

        assert "Must start with http:// or https://" in str(exc_info.value)

    def test_base_url_trailing_slash_added(self) -> None:
        assert APIConfig(base_url="https://api.test/v1").base_url == "https://api.test/v1/"

    def test_logging_level_case_insensitive(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_logging_level_invalid(self) -> None:
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="VERBOSE")

    def test_transport_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            TransportConfig(timeout_connect=0)

    def test_scope_returns_copy(self, test_config: Config) -> None:
        """Test scoping to another customer leaves the original untouched."""
        scoped = test_config.scope("customer-99")

        assert scoped.customer_id == "customer-99"
        assert test_config.customer_id == "customer-42"
        assert scoped.oauth == test_config.oauth

    def test_scope_rejects_empty(self, test_config: Config) -> None:
        with pytest.raises(ValueError):
            test_config.scope("")

    def test_missing_credentials(self) -> None:
        assert Config().missing_credentials() == [
            "customer_id",
            "oauth.consumer_key",
            "oauth.consumer_secret",
            "saml.provider_id",
            "saml.private_key_path",
        ]

    def test_no_missing_credentials(self, test_config: Config) -> None:
        assert test_config.missing_credentials() == []
        assert require_credentials(test_config) is test_config

    def test_require_credentials_lists_missing(self) -> None:
        with pytest.raises(ConfigurationError, match="oauth.consumer_key"):
            require_credentials(Config(customer_id="c"))


class TestConfigurationLoading:
    """Test loading configuration files."""

    def test_load_config_with_valid_file(self, tmp_path: Path) -> None:
        config_file = write_config(
            tmp_path,
            {
                "customer_id": "customer-1",
                "saml": {"provider_id": "provider", "private_key_path": "certs/app.key"},
                "transport": {"max_retries": 5},
            },
        )

        config = load_config(config_file)

        assert config.customer_id == "customer-1"
        assert config.saml.provider_id == "provider"
        assert config.saml.private_key_path == Path("certs/app.key")
        assert config.transport.max_retries == 5

    def test_load_config_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "absent.json")

        assert config == Config(**DEFAULT_CONFIG)

    def test_defaults_are_not_mutated(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}CONSUMER_KEY", "from-env")

        load_config(tmp_path / "absent.json")

        assert DEFAULT_CONFIG["oauth"]["consumer_key"] == ""

    def test_load_config_malformed_json(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.json"
        config_file.write_text("{ not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(config_file)

    def test_load_config_non_object(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.json"
        config_file.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config(config_file)

    def test_load_config_with_validation_error(self, tmp_path: Path) -> None:
        config_file = write_config(tmp_path, {"api": {"base_url": "not-a-url"}})

        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(config_file)

    def test_secret_in_file_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        config_file = write_config(tmp_path, {"oauth": {"consumer_secret": "s3cret"}})

        with caplog.at_level(logging.WARNING):
            load_config(config_file)

        assert "consumer secret found in configuration file" in caplog.text


class TestEnvironmentVariableOverrides:
    """Test INTUIT_CAD_* overrides."""

    def test_credentials_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}CUSTOMER_ID", "env-customer")
        monkeypatch.setenv(f"{ENV_PREFIX}CONSUMER_KEY", "env-key")
        monkeypatch.setenv(f"{ENV_PREFIX}CONSUMER_SECRET", "env-secret")
        monkeypatch.setenv(f"{ENV_PREFIX}SAML_PROVIDER_ID", "env-provider")
        monkeypatch.setenv(f"{ENV_PREFIX}PRIVATE_KEY_PATH", "/keys/app.key")

        config = load_config(tmp_path / "absent.json")

        assert config.customer_id == "env-customer"
        assert config.oauth.consumer_key == "env-key"
        assert config.oauth.consumer_secret == "env-secret"
        assert config.saml.provider_id == "env-provider"
        assert config.saml.private_key_path == Path("/keys/app.key")
        assert config.missing_credentials() == []

    def test_precedence_env_over_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = write_config(tmp_path, {"api": {"base_url": "https://file.test/v1/"}})
        monkeypatch.setenv(f"{ENV_PREFIX}BASE_URL", "https://env.test/v1")

        config = load_config(config_file)

        assert config.api.base_url == "https://env.test/v1/"

    def test_boolean_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}VERIFY_TLS", "false")
        monkeypatch.setenv(f"{ENV_PREFIX}REDACT_SECRETS", "no")

        config = load_config(tmp_path / "absent.json")

        assert config.transport.verify_tls is False
        assert config.logging.redact_secrets is False

    def test_numeric_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}TIMEOUT_CONNECT", "20")
        monkeypatch.setenv(f"{ENV_PREFIX}TIMEOUT_READ", "90")
        monkeypatch.setenv(f"{ENV_PREFIX}MAX_RETRIES", "5")

        config = load_config(tmp_path / "absent.json")

        assert config.transport.timeout_connect == 20
        assert config.transport.timeout_read == 90
        assert config.transport.max_retries == 5

    def test_invalid_integer(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}MAX_RETRIES", "many")

        with pytest.raises(ConfigurationError, match="Invalid integer"):
            load_config(tmp_path / "absent.json")

    def test_log_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}LOG_LEVEL", "warning")
        monkeypatch.setenv(f"{ENV_PREFIX}LOG_FILE", str(tmp_path / "cad.log"))

        config = load_config(tmp_path / "absent.json")

        assert config.logging.level == "WARNING"
        assert config.logging.log_file == tmp_path / "cad.log"

    def test_invalid_env_value_fails_validation(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(f"{ENV_PREFIX}TOKEN_URL", "oauth.test/token")

        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "absent.json")
