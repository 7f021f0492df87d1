"""Config module.

This module provides configuration management functionality.
"""

from intuit_cad.config.manager import load_config, require_credentials
from intuit_cad.config.schema import (
    APIConfig,
    Config,
    LoggingConfig,
    OAuthConfig,
    SAMLConfig,
    TransportConfig,
)

__all__ = [
    "load_config",
    "require_credentials",
    "Config",
    "OAuthConfig",
    "SAMLConfig",
    "APIConfig",
    "TransportConfig",
    "LoggingConfig",
]
