"""Custom exception classes for the Intuit Customer Account Data client.

All exceptions inherit from IntuitCADError to allow catching all custom exceptions.
"""

from typing import Any, Mapping, Optional


class IntuitCADError(Exception):
    """Base exception for all intuit_cad custom exceptions."""

    pass


class ValidationError(IntuitCADError):
    """Raised when caller-supplied data is invalid.

    Examples:
        - Answer count does not match challenge count
        - Empty institution or login identifier
    """

    pass


class ConfigurationError(IntuitCADError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing consumer key or private key path
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class TemplateLoadError(IntuitCADError):
    """Raised when a SAML XML template cannot be loaded or rendered.

    Examples:
        - Template file missing from the installed package
        - Template is not well-formed XML
        - Placeholder without a value
    """

    pass


class SAMLError(IntuitCADError):
    """Raised when SAML assertion construction or signing fails."""

    pass


class KeyLoadError(SAMLError):
    """Raised when the private key file cannot be read.

    Examples:
        - Key file not found
        - Permission denied
    """

    pass


class KeyFormatError(SAMLError):
    """Raised when the key file content is not a PEM-encoded RSA private key.

    Examples:
        - Not PEM-encoded
        - PEM block is a certificate or public key
        - Key is encrypted or not RSA
    """

    pass


class SigningError(SAMLError):
    """Raised when the RSA signing operation itself fails."""

    pass


class TokenExchangeError(IntuitCADError):
    """Base exception for SAML-to-OAuth token exchange failures."""

    pass


class AssertionRejectedError(TokenExchangeError):
    """Raised when the identity provider rejects the signed assertion.

    Carries the HTTP status line and the URL-decoded ``WWW-Authenticate``
    header so the caller can diagnose clock skew, bad signatures or bad
    credentials. A fresh assertion must be built before retrying.

    Attributes:
        status: HTTP status line (e.g. "401 Unauthorized"), or None when the
            request never produced a response
        detail: Decoded provider diagnostic text
    """

    def __init__(self, status: Optional[str], detail: str) -> None:
        self.status = status
        self.detail = detail
        message = f"{status} {detail}".strip() if status else detail
        super().__init__(message)


class TokenResponseMalformedError(TokenExchangeError):
    """Raised when a 200 token response lacks oauth_token or oauth_token_secret."""

    pass


class ChallengeFormatError(IntuitCADError):
    """Raised when an MFA challenge payload does not have the expected shape.

    Examples:
        - ``challenge`` field missing or not a list
        - Choice object without ``val`` or ``text``
        - Missing challenge session/node headers
    """

    pass


class TransportError(IntuitCADError):
    """Raised when network/transport issues occur.

    Examples:
        - Connection refused
        - Timeout
        - TLS failure
    """

    pass


class ApiHTTPError(TransportError):
    """Raised when the Customer Account Data API answers with a non-2xx status.

    Attributes:
        status_code: HTTP status code
        reason: HTTP reason phrase
        headers: Response headers (case-insensitive mapping)
        body: Raw response body bytes
        data: Decoded JSON body, or None if the body was not JSON
    """

    def __init__(
        self,
        status_code: int,
        reason: str,
        headers: Mapping[str, str],
        body: bytes,
        data: Any = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.headers = headers
        self.body = body
        self.data = data
        super().__init__(f"HTTP {status_code} {reason}".rstrip())
