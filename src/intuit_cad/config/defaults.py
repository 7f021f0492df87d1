"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

from intuit_cad.config.schema import DEFAULT_BASE_URL, DEFAULT_TOKEN_URL

DEFAULT_CONFIG: dict[str, Any] = {
    # No default customer; scope per session or via INTUIT_CAD_CUSTOMER_ID
    "customer_id": "",
    "oauth": {
        # Credentials come from the environment, never from the file
        "consumer_key": "",
        "consumer_secret": "",
    },
    "saml": {
        "provider_id": "",
        "private_key_path": None,
        "token_url": DEFAULT_TOKEN_URL,
    },
    "api": {
        "base_url": DEFAULT_BASE_URL,
    },
    "transport": {
        "verify_tls": True,
        "timeout_connect": 10,
        # Institution logins can take close to a minute to answer
        "timeout_read": 60,
        "max_retries": 3,
        "backoff_factor": 0.5,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/intuit-cad.log",
        "redact_secrets": True,
    },
}

DEFAULT_CONFIG_PATH = "config/config.json"
