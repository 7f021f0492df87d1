"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using
pydantic. The root Config replaces a process-wide session configuration:
each CustomerAccountDataClient owns one Config instance.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_TOKEN_URL = "https://oauth.intuit.com/oauth/v1/get_access_token_by_saml"
DEFAULT_BASE_URL = "https://financialdatafeed.platform.intuit.com/v1/"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"Invalid URL: {v}. Must start with http:// or https://")
    return v


class OAuthConfig(BaseModel):
    """OAuth consumer credentials issued for the application.

    Attributes:
        consumer_key: OAuth consumer key
        consumer_secret: OAuth consumer secret
    """

    consumer_key: str = Field(default="", description="OAuth consumer key")
    consumer_secret: str = Field(default="", description="OAuth consumer secret")


class SAMLConfig(BaseModel):
    """SAML identity provider settings.

    Attributes:
        provider_id: SAML identity provider id registered with Intuit
        private_key_path: Path to the PEM RSA private key used for signing
        token_url: SAML-to-OAuth token endpoint
    """

    provider_id: str = Field(default="", description="SAML identity provider id")
    private_key_path: Optional[Path] = Field(
        default=None, description="PEM RSA private key for assertion signing"
    )
    token_url: str = Field(default=DEFAULT_TOKEN_URL, description="SAML token endpoint")

    @field_validator("token_url")
    @classmethod
    def validate_token_url(cls, v: str) -> str:
        """Validate the token endpoint is HTTP/HTTPS."""
        return _validate_http_url(v)


class APIConfig(BaseModel):
    """Customer Account Data API settings.

    Attributes:
        base_url: API base URL (normalized to end with ``/``)
    """

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the base URL and normalize the trailing slash."""
        _validate_http_url(v)
        return v if v.endswith("/") else f"{v}/"


class TransportConfig(BaseModel):
    """Configuration for HTTP/HTTPS transport.

    Attributes:
        verify_tls: Whether to verify TLS certificates
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
        max_retries: Maximum retry attempts for idempotent API requests
        backoff_factor: Exponential backoff factor for retries
    """

    verify_tls: bool = True
    timeout_connect: int = Field(default=10, ge=1, description="Connection timeout in seconds")
    timeout_read: int = Field(default=60, ge=1, description="Read timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts")
    backoff_factor: float = Field(default=0.5, ge=0.0, description="Exponential backoff factor")


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_secrets: Mask tokens, assertions and credentials in log output
    """

    level: str = Field(default="INFO", description="Log level")
    log_file: Path = Field(default=Path("logs/intuit-cad.log"), description="Log file path")
    redact_secrets: bool = Field(default=True, description="Redact secrets from logs")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level and return it uppercased."""
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        customer_id: Customer the session is scoped to (SAML subject)
        oauth: OAuth consumer credentials
        saml: SAML identity provider settings
        api: API endpoint settings
        transport: HTTP transport settings
        logging: Logging settings

    Example:
        >>> config = Config(
        ...     customer_id="customer-42",
        ...     oauth=OAuthConfig(consumer_key="key", consumer_secret="secret"),
        ...     saml=SAMLConfig(provider_id="provider", private_key_path=Path("app.key")),
        ... )
        >>> config.api.base_url
        'https://financialdatafeed.platform.intuit.com/v1/'
    """

    customer_id: str = Field(default="", description="Scoped customer id")
    oauth: OAuthConfig = OAuthConfig()
    saml: SAMLConfig = SAMLConfig()
    api: APIConfig = APIConfig()
    transport: TransportConfig = TransportConfig()
    logging: LoggingConfig = LoggingConfig()

    def scope(self, customer_id: str) -> "Config":
        """Return a copy of this configuration scoped to another customer."""
        if not customer_id:
            raise ValueError("customer_id must be non-empty")
        return self.model_copy(update={"customer_id": customer_id})

    def missing_credentials(self) -> list[str]:
        """List the settings required for token acquisition that are unset."""
        missing = []
        if not self.customer_id:
            missing.append("customer_id")
        if not self.oauth.consumer_key:
            missing.append("oauth.consumer_key")
        if not self.oauth.consumer_secret:
            missing.append("oauth.consumer_secret")
        if not self.saml.provider_id:
            missing.append("saml.provider_id")
        if self.saml.private_key_path is None:
            missing.append("saml.private_key_path")
        return missing
