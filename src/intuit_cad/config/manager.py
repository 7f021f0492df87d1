"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading functionality, including
support for JSON configuration files, environment variable overrides, and
configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from intuit_cad.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from intuit_cad.config.schema import Config
from intuit_cad.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "INTUIT_CAD_"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (INTUIT_CAD_* prefix, .env file honored)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("config/config.json"))
        >>> token_url = config.saml.token_url
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)

    _check_sensitive_values(config_dict)

    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Raises:
        ConfigurationError: If JSON is malformed or unreadable
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a JSON object at the top level"
            )
        logger.info(f"Loaded configuration from {config_path}")
        return config_dict

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    # Deep copy so callers cannot mutate the defaults
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with INTUIT_CAD_ prefix.

    Environment variables follow the pattern: INTUIT_CAD_<SECTION>_<FIELD>
    For example: INTUIT_CAD_CONSUMER_KEY, INTUIT_CAD_LOG_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied
    """
    if customer_id := os.getenv(f"{ENV_PREFIX}CUSTOMER_ID"):
        config_dict["customer_id"] = customer_id
        logger.debug("Override: customer_id from environment")

    # OAuth section
    if consumer_key := os.getenv(f"{ENV_PREFIX}CONSUMER_KEY"):
        config_dict.setdefault("oauth", {})["consumer_key"] = consumer_key
        logger.debug("Override: consumer_key from environment")

    if consumer_secret := os.getenv(f"{ENV_PREFIX}CONSUMER_SECRET"):
        config_dict.setdefault("oauth", {})["consumer_secret"] = consumer_secret
        logger.debug("Override: consumer_secret from environment")

    # SAML section
    if provider_id := os.getenv(f"{ENV_PREFIX}SAML_PROVIDER_ID"):
        config_dict.setdefault("saml", {})["provider_id"] = provider_id
        logger.debug("Override: saml provider_id from environment")

    if key_path := os.getenv(f"{ENV_PREFIX}PRIVATE_KEY_PATH"):
        config_dict.setdefault("saml", {})["private_key_path"] = key_path
        logger.debug("Override: private_key_path from environment")

    if token_url := os.getenv(f"{ENV_PREFIX}TOKEN_URL"):
        config_dict.setdefault("saml", {})["token_url"] = token_url
        logger.debug("Override: token_url from environment")

    # API section
    if base_url := os.getenv(f"{ENV_PREFIX}BASE_URL"):
        config_dict.setdefault("api", {})["base_url"] = base_url
        logger.debug("Override: base_url from environment")

    # Transport section
    if verify_tls := os.getenv(f"{ENV_PREFIX}VERIFY_TLS"):
        config_dict.setdefault("transport", {})["verify_tls"] = _parse_bool(verify_tls)
        logger.debug("Override: verify_tls from environment")

    try:
        if timeout_connect := os.getenv(f"{ENV_PREFIX}TIMEOUT_CONNECT"):
            config_dict.setdefault("transport", {})["timeout_connect"] = int(timeout_connect)
            logger.debug("Override: timeout_connect from environment")

        if timeout_read := os.getenv(f"{ENV_PREFIX}TIMEOUT_READ"):
            config_dict.setdefault("transport", {})["timeout_read"] = int(timeout_read)
            logger.debug("Override: timeout_read from environment")

        if max_retries := os.getenv(f"{ENV_PREFIX}MAX_RETRIES"):
            config_dict.setdefault("transport", {})["max_retries"] = int(max_retries)
            logger.debug("Override: max_retries from environment")
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid integer in {ENV_PREFIX}* transport environment variable: {e}"
        ) from e

    # Logging section
    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config_dict.setdefault("logging", {})["level"] = log_level
        logger.debug("Override: log_level from environment")

    if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config_dict.setdefault("logging", {})["log_file"] = log_file
        logger.debug("Override: log_file from environment")

    if redact := os.getenv(f"{ENV_PREFIX}REDACT_SECRETS"):
        config_dict.setdefault("logging", {})["redact_secrets"] = _parse_bool(redact)
        logger.debug("Override: redact_secrets from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when secrets are stored in the configuration file.

    Consumer secrets should be in environment variables, not config files.
    """
    oauth = config_dict.get("oauth", {})
    if isinstance(oauth, dict) and oauth.get("consumer_secret"):
        logger.warning(
            "WARNING: OAuth consumer secret found in configuration file! "
            "Secrets should be stored in environment variables, not config files. "
            f"Use {ENV_PREFIX}CONSUMER_SECRET environment variable instead."
        )


def require_credentials(config: Config) -> Config:
    """Ensure everything needed for token acquisition is configured.

    Raises:
        ConfigurationError: Listing every missing setting
    """
    missing = config.missing_credentials()
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}. "
            f"Set them in the config file or via {ENV_PREFIX}* environment variables."
        )
    return config
