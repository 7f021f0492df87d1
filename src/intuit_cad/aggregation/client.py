"""Customer Account Data API client.

CustomerAccountDataClient is the session object for one customer: it owns
the Config, acquires the OAuth token on first use through the SAML exchange,
and drives institution logins through their MFA challenge states.
"""

import logging
from collections.abc import Mapping
from datetime import date
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

from ..config.manager import require_credentials
from ..config.schema import Config
from ..models.challenge import (
    ChallengeSession,
    ContextType,
    Credential,
    LoginResult,
    LoginState,
)
from ..models.saml import OAuthToken
from ..saml.token_exchange import TokenExchanger, acquire_token
from ..transport.http_client import ApiTransport
from ..utils.exceptions import ApiHTTPError, ValidationError
from .challenge_parser import is_challenge_response, parse_challenge_session
from .payloads import build_challenge_response_payload, build_credentials_payload

logger = logging.getLogger(__name__)

API_DATE_FORMAT = "%Y-%m-%d"

CHALLENGE_NODE_ID_HEADER = "challengeNodeId"
CHALLENGE_SESSION_ID_HEADER = "challengeSessionId"


def _segment(value: str) -> str:
    """Quote an identifier for use as a single path segment."""
    if not value:
        raise ValidationError("Identifier must be non-empty")
    return quote(str(value), safe="")


def _format_date(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.strftime(API_DATE_FORMAT)
    return value


def _list_field(data: Any, name: str) -> List[Any]:
    if isinstance(data, Mapping):
        return list(data.get(name) or [])
    return []


class CustomerAccountDataClient:
    """Client for the Customer Account Data API scoped to one customer.

    The OAuth token is acquired lazily and shared by every call made through
    the client. Acquisition happens under a re-entrant lock so concurrent
    callers never trigger duplicate exchanges.

    Attributes:
        config: Configuration the client was created with

    Example:
        >>> with CustomerAccountDataClient(load_config()) as client:
        ...     result = client.discover_and_add_accounts(
        ...         "100000", "direct", "blue", "Banking Userid", "Banking Password"
        ...     )
        ...     if result.is_challenged:
        ...         result = client.respond_to_challenge(
        ...             result.challenge_session.answer("Boston")
        ...         )
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[ApiTransport] = None,
        exchanger: Optional[TokenExchanger] = None,
    ) -> None:
        self.config = config
        self._transport = transport or ApiTransport(
            config.api.base_url,
            config.oauth.consumer_key,
            config.oauth.consumer_secret,
            config.transport,
        )
        self._exchanger = exchanger or TokenExchanger(config.transport)
        self._token: Optional[OAuthToken] = None
        self._lock = RLock()

    # Token lifecycle

    @property
    def token(self) -> OAuthToken:
        """Current OAuth token, acquired on first access."""
        return self.ensure_token()

    def ensure_token(self) -> OAuthToken:
        """Return the cached token, running the SAML exchange if there is none.

        Raises:
            ConfigurationError: If credentials needed for the exchange are missing
            SAMLError: If the assertion cannot be signed
            TokenExchangeError: If the exchange fails; the token stays unset
        """
        with self._lock:
            if self._token is None:
                require_credentials(self.config)
                logger.info(f"Acquiring OAuth token for customer {self.config.customer_id}")
                self._token = acquire_token(self.config, exchanger=self._exchanger)
            return self._token

    def reset_token(self) -> None:
        """Drop the cached token so the next call acquires a fresh one."""
        with self._lock:
            self._token = None
        logger.debug("OAuth token cleared")

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        token = self.ensure_token()
        try:
            return self._transport.request(
                method, path, token, body=body, params=params, headers=headers
            )
        except ApiHTTPError as e:
            if e.status_code == 401 and not is_challenge_response(e.data, e.headers):
                # An expired or revoked token is not reused by later calls.
                # MFA challenges also answer 401 and must keep the token.
                self._discard_token(token)
            raise

    def _discard_token(self, token: OAuthToken) -> None:
        """Clear ``token`` unless another caller already replaced it."""
        with self._lock:
            if self._token is not token:
                return
            self._token = None
        logger.debug("Rejected OAuth token cleared")

    # Institution logins

    def _login(
        self,
        context_type: ContextType,
        method: str,
        path: str,
        body: Optional[str],
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        institution_id: Optional[str] = None,
        login_id: Optional[str] = None,
    ) -> LoginResult:
        try:
            data = self._request(method, path, body=body, params=params, headers=headers)
        except ApiHTTPError as e:
            if not is_challenge_response(e.data, e.headers):
                logger.error(f"Institution login failed: {e}")
                raise
            session = parse_challenge_session(
                context_type,
                e.data,
                e.headers,
                institution_id=institution_id,
                login_id=login_id,
            )
            return LoginResult(state=LoginState.CHALLENGED, challenge_session=session)

        accounts = _list_field(data, "accounts")
        logger.info(f"Institution login complete: {len(accounts)} account(s)")
        return LoginResult(state=LoginState.DONE, accounts=accounts)

    def discover_and_add_accounts(
        self,
        institution_id: str,
        username: str,
        password: str,
        username_key: str,
        password_key: str,
    ) -> LoginResult:
        """Log in to an institution and add the accounts it returns.

        Args:
            institution_id: Institution to log in to
            username: Login user name
            password: Login password
            username_key: Credential key the institution uses for the user name
            password_key: Credential key the institution uses for the password

        Returns:
            DONE result with accounts, or CHALLENGED result with a session
            to answer through respond_to_challenge

        Raises:
            ApiHTTPError: If the login is rejected without a challenge
            ChallengeFormatError: If the challenge response is malformed
        """
        body = build_credentials_payload(
            [Credential(username_key, username), Credential(password_key, password)]
        )
        return self._login(
            ContextType.DISCOVER_AND_ADD,
            "POST",
            f"institutions/{_segment(institution_id)}/logins",
            body,
            institution_id=institution_id,
        )

    def update_institution_login(
        self, login_id: str, credentials: Optional[Sequence[Credential]] = None
    ) -> LoginResult:
        """Refresh an existing login, optionally with new credentials.

        Raises:
            ApiHTTPError: If the update is rejected without a challenge
            ChallengeFormatError: If the challenge response is malformed
        """
        body = build_credentials_payload(credentials) if credentials else None
        return self._login(
            ContextType.UPDATE_LOGIN,
            "PUT",
            f"logins/{_segment(login_id)}",
            body,
            params={"refresh": "true"},
            login_id=login_id,
        )

    def respond_to_challenge(self, session: ChallengeSession) -> LoginResult:
        """Submit answers for a paused login and resume it.

        Args:
            session: Challenge session with one answer per challenge

        Returns:
            DONE result, or a new CHALLENGED result if the institution asks again

        Raises:
            ValidationError: If the answer count does not match the question count
            ApiHTTPError: If the answers are rejected without a new challenge
        """
        if len(session.answers) != len(session.challenges):
            raise ValidationError(
                f"Expected {len(session.challenges)} answer(s), got {len(session.answers)}"
            )

        body = build_challenge_response_payload(session.answers)
        headers = {
            CHALLENGE_NODE_ID_HEADER: session.node_id,
            CHALLENGE_SESSION_ID_HEADER: session.session_id,
        }
        logger.info(f"Responding to MFA challenge ({session.context_type.value})")

        if session.context_type is ContextType.DISCOVER_AND_ADD:
            return self._login(
                session.context_type,
                "POST",
                f"institutions/{_segment(session.institution_id)}/logins",
                body,
                headers=headers,
                institution_id=session.institution_id,
            )
        return self._login(
            session.context_type,
            "PUT",
            f"logins/{_segment(session.login_id)}",
            body,
            headers=headers,
            login_id=session.login_id,
        )

    # Passthroughs

    def institutions(self) -> List[Any]:
        """List the institutions supported by the aggregation service."""
        return _list_field(self._request("GET", "institutions"), "institution")

    def institution(self, institution_id: str) -> Any:
        """Get institution details, including the credential keys it expects."""
        return self._request("GET", f"institutions/{_segment(institution_id)}")

    def accounts(self) -> List[Any]:
        """List every account aggregated for the customer."""
        return _list_field(self._request("GET", "accounts"), "accounts")

    def account(self, account_id: str) -> Optional[Any]:
        """Get a single account, or None if the API returns none."""
        accounts = _list_field(
            self._request("GET", f"accounts/{_segment(account_id)}"), "accounts"
        )
        return accounts[0] if accounts else None

    def login_accounts(self, login_id: str) -> List[Any]:
        """List the accounts attached to an institution login."""
        return _list_field(
            self._request("GET", f"logins/{_segment(login_id)}/accounts"), "accounts"
        )

    def transactions(
        self,
        account_id: str,
        start: Union[date, str],
        end: Optional[Union[date, str]] = None,
    ) -> Any:
        """Get account transactions between two dates (inclusive).

        Args:
            account_id: Account to query
            start: First day of the range
            end: Last day of the range (the API defaults it to today)

        Returns:
            Decoded transaction list response
        """
        params = {"txnStartDate": _format_date(start)}
        if end is not None:
            params["txnEndDate"] = _format_date(end)
        return self._request(
            "GET", f"accounts/{_segment(account_id)}/transactions", params=params
        )

    def delete_customer(self) -> None:
        """Delete the customer and every account aggregated for them."""
        self._request("DELETE", "customers")
        logger.info(f"Deleted customer {self.config.customer_id}")

    def delete_account(self, account_id: str) -> None:
        """Delete a single aggregated account."""
        self._request("DELETE", f"accounts/{_segment(account_id)}")
        logger.info(f"Deleted account {account_id}")

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "CustomerAccountDataClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
