"""HTTP transport for the Customer Account Data API.

This module provides the requests session factory shared by the token
exchange and the API client, plus ApiTransport, which performs OAuth 1.0a
signed calls against the API base URL and decodes JSON responses.
"""

import json
import logging
from decimal import Decimal
from threading import Lock
from typing import Any, Mapping, Optional, Union
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from requests_oauthlib import OAuth1
from urllib3.util.retry import Retry

from ..config.schema import TransportConfig
from ..models.saml import OAuthToken
from ..utils.exceptions import ApiHTTPError, TransportError

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = [429, 500, 502, 503, 504]

# Only idempotent reads and deletes are retried; login POST/PUT calls
# drive the MFA flow at the institution and must not be replayed.
RETRY_METHODS = ["GET", "DELETE"]

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/xml",
}


def create_session(
    transport: Optional[TransportConfig] = None, retries: bool = True
) -> requests.Session:
    """Create a requests session configured from TransportConfig.

    Args:
        transport: Transport settings. Uses defaults if not provided.
        retries: Mount a retrying adapter. The token exchange passes False
            because a rejected assertion never succeeds on blind retry.

    Returns:
        Configured requests.Session. Caller is responsible for closing.

    Example:
        >>> session = create_session(TransportConfig(max_retries=5))
        >>> try:
        ...     response = session.get(url)
        ... finally:
        ...     session.close()
    """
    transport = transport or TransportConfig()

    retry_strategy = Retry(
        total=transport.max_retries if retries else 0,
        backoff_factor=transport.backoff_factor,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=RETRY_METHODS,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)

    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = transport.verify_tls

    if not transport.verify_tls:
        logger.warning(
            "TLS certificate verification is DISABLED. "
            "This should only be used against local test doubles."
        )

    logger.debug(
        "Created HTTP session with retry_count=%d, verify_tls=%s",
        retry_strategy.total,
        transport.verify_tls,
    )
    return session


def decode_json(content: bytes) -> Any:
    """Decode a JSON body keeping numbers exact.

    Amounts and balances come back as JSON numbers; decoding floats as
    Decimal keeps them from picking up binary rounding error.

    Returns:
        Decoded JSON, or None for an empty body

    Raises:
        ValueError: If the body is not valid JSON
    """
    if not content or not content.strip():
        return None
    return json.loads(content, parse_float=Decimal)


class ApiTransport:
    """Perform OAuth 1.0a signed requests against the CAD API.

    Attributes:
        base_url: API base URL ending in ``/``
        consumer_key: OAuth consumer key
        consumer_secret: OAuth consumer secret
        transport: Timeout, retry and TLS settings

    Example:
        >>> api = ApiTransport(config.api.base_url, key, secret, config.transport)
        >>> data = api.request("GET", "institutions", token=token)
        >>> api.close()
    """

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        transport: Optional[TransportConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.transport = transport or TransportConfig()
        self._session = session
        self._lock = Lock()

    @property
    def session(self) -> requests.Session:
        """Lazily created session with the retrying adapter."""
        with self._lock:
            if self._session is None:
                self._session = create_session(self.transport)
            return self._session

    def url_for(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        token: OAuthToken,
        body: Optional[Union[str, bytes]] = None,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Send a signed request and decode the JSON response.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Path relative to the API base URL
            token: OAuth access token from the SAML exchange
            body: XML request body for POST/PUT
            params: Query string parameters
            headers: Extra headers (e.g. challenge session correlation ids)

        Returns:
            Decoded JSON body, or None if the response had no body

        Raises:
            ApiHTTPError: If the API answers with a non-2xx status
            TransportError: On connection failure, timeout, or undecodable 2xx body
        """
        url = self.url_for(path)
        request_headers = dict(DEFAULT_HEADERS)
        if headers:
            request_headers.update(headers)

        auth = OAuth1(
            self.consumer_key,
            client_secret=self.consumer_secret,
            resource_owner_key=token.token,
            resource_owner_secret=token.secret,
        )

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                data=body.encode("utf-8") if isinstance(body, str) else body,
                params=params,
                headers=request_headers,
                auth=auth,
                timeout=(self.transport.timeout_connect, self.transport.timeout_read),
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        if not response.ok:
            try:
                data = decode_json(response.content)
            except ValueError:
                data = None
            raise ApiHTTPError(
                status_code=response.status_code,
                reason=response.reason or "",
                headers=response.headers,
                body=response.content,
                data=data,
            )

        try:
            return decode_json(response.content)
        except ValueError as e:
            raise TransportError(
                f"{method} {url} returned a non-JSON body: {e}"
            ) from e

    def close(self) -> None:
        """Close the session and release pooled connections."""
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None
                logger.debug("ApiTransport session closed")

    def __enter__(self) -> "ApiTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
