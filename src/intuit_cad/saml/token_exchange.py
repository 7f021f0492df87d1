"""SAML-to-OAuth token exchange.

Posts the signed assertion to Intuit's ``get_access_token_by_saml``
endpoint and parses the url-encoded token response. A rejected assertion
is never retried here: expired clock skew, a bad signature or bad
credentials will not succeed on a blind retry, so the caller must build a
fresh assertion.
"""

import base64
import logging
from datetime import datetime
from typing import Optional
from urllib.parse import parse_qs, unquote_plus

import requests

from ..config.schema import Config, TransportConfig
from ..models.saml import OAuthToken
from ..transport.http_client import create_session
from ..utils.exceptions import (
    AssertionRejectedError,
    KeyLoadError,
    TokenResponseMalformedError,
)
from .assertion import AssertionBuilder, serialize_assertion
from .signature import SignatureBuilder, sign_assertion

logger = logging.getLogger(__name__)


def encode_assertion(signed_assertion_xml: str) -> str:
    """Base64url-encode (with padding) the UTF-8 bytes of the assertion XML."""
    return base64.urlsafe_b64encode(signed_assertion_xml.encode("utf-8")).decode("ascii")


def parse_token_response(body: str) -> OAuthToken:
    """Parse a url-encoded token response body.

    Raises:
        TokenResponseMalformedError: If oauth_token or oauth_token_secret is absent
    """
    values = parse_qs(body, keep_blank_values=True)
    token = values.get("oauth_token", [""])[0]
    secret = values.get("oauth_token_secret", [""])[0]

    missing = [
        name
        for name, value in (("oauth_token", token), ("oauth_token_secret", secret))
        if not value
    ]
    if missing:
        raise TokenResponseMalformedError(
            f"Token response is missing {', '.join(missing)}"
        )
    return OAuthToken(token=token, secret=secret)


class TokenExchanger:
    """Exchange signed SAML assertions for OAuth access tokens.

    Attributes:
        transport: Timeout and TLS settings for the exchange request

    Example:
        >>> exchanger = TokenExchanger()
        >>> token = exchanger.exchange(signed_xml, "consumer-key", DEFAULT_TOKEN_URL)
        >>> token.token
        'abc123'
    """

    def __init__(
        self,
        transport: Optional[TransportConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.transport = transport or TransportConfig()
        self._session = session

    def exchange(self, signed_assertion_xml: str, consumer_key: str, saml_endpoint: str) -> OAuthToken:
        """Exchange a signed assertion for an OAuth token.

        Args:
            signed_assertion_xml: Serialized signed assertion
            consumer_key: OAuth consumer key
            saml_endpoint: Token endpoint URL

        Returns:
            OAuthToken from the provider

        Raises:
            AssertionRejectedError: On non-200 status or transport failure
            TokenResponseMalformedError: If the 200 body lacks token fields
        """
        form = {
            "saml_assertion": encode_assertion(signed_assertion_xml),
            "oauth_consumer_key": consumer_key,
        }

        session = self._session or create_session(self.transport, retries=False)
        try:
            logger.info(f"Requesting OAuth token from {saml_endpoint}")
            try:
                response = session.post(
                    saml_endpoint,
                    data=form,
                    timeout=(self.transport.timeout_connect, self.transport.timeout_read),
                )
            except requests.RequestException as e:
                logger.error(f"Token exchange request failed: {e}")
                raise AssertionRejectedError(None, f"Token request failed: {e}") from e
        finally:
            if self._session is None:
                session.close()

        if response.status_code != 200:
            detail = unquote_plus(response.headers.get("WWW-Authenticate", ""))
            status_line = f"{response.status_code} {response.reason or ''}".rstrip()
            logger.error(f"SAML assertion rejected: {status_line} {detail}")
            raise AssertionRejectedError(status_line, detail)

        token = parse_token_response(response.text)
        logger.info("OAuth token acquired via SAML exchange")
        return token


def acquire_token(
    config: Config,
    exchanger: Optional[TokenExchanger] = None,
    assertion_builder: Optional[AssertionBuilder] = None,
    signature_builder: Optional[SignatureBuilder] = None,
    now: Optional[datetime] = None,
) -> OAuthToken:
    """Build, sign and exchange a fresh assertion for the configured customer.

    Args:
        config: Configuration with customer id, SAML and OAuth settings
        exchanger: Token exchanger (defaults to one using config.transport)
        assertion_builder: Assertion builder (injectable clock)
        signature_builder: Signature builder (injectable signer)
        now: Issue instant override

    Returns:
        OAuthToken

    Raises:
        KeyLoadError, KeyFormatError, SigningError: On signing failure
        AssertionRejectedError, TokenResponseMalformedError: On exchange failure
    """
    if config.saml.private_key_path is None:
        raise KeyLoadError("No private key configured: set saml.private_key_path")

    assertion = (assertion_builder or AssertionBuilder()).build(
        config.saml.provider_id, config.customer_id, now=now
    )
    signed = sign_assertion(assertion, config.saml.private_key_path, signature_builder)
    exchanger = exchanger or TokenExchanger(config.transport)
    return exchanger.exchange(
        serialize_assertion(signed), config.oauth.consumer_key, config.saml.token_url
    )
