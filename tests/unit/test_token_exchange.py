"""Unit tests for the SAML-to-OAuth token exchange.

The requests session is mocked; no network traffic is generated.
"""

import base64
from unittest.mock import Mock, patch

import pytest
import requests

from intuit_cad.config.schema import DEFAULT_TOKEN_URL, TransportConfig
from intuit_cad.models.saml import OAuthToken
from intuit_cad.saml.token_exchange import (
    TokenExchanger,
    acquire_token,
    encode_assertion,
    parse_token_response,
)
from intuit_cad.saml.verifier import SignatureVerifier
from intuit_cad.utils.exceptions import (
    AssertionRejectedError,
    KeyLoadError,
    TokenExchangeError,
    TokenResponseMalformedError,
)


def make_response(status_code=200, text="", reason="OK", headers=None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.reason = reason
    response.headers = headers or {}
    return response


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(
        text="oauth_token=tok123&oauth_token_secret=sec456"
    )
    return session


class TestEncodeAssertion:
    def test_url_safe_alphabet(self):
        """Test '-' and '_' replace '+' and '/'."""
        # Standard base64 would give "Pz8+" and "Pz8/"
        assert encode_assertion("??>") == "Pz8-"
        assert encode_assertion("???") == "Pz8_"

    def test_decodes_back_to_utf8(self):
        xml = '<saml2:Issuer>prövider</saml2:Issuer>'

        assert base64.urlsafe_b64decode(encode_assertion(xml)).decode("utf-8") == xml

    def test_padding_is_kept(self):
        assert encode_assertion("ab") == "YWI="


class TestParseTokenResponse:
    def test_parses_token_pair(self):
        token = parse_token_response("oauth_token=abc&oauth_token_secret=def")

        assert token == OAuthToken(token="abc", secret="def")

    def test_url_decodes_values(self):
        token = parse_token_response("oauth_token=a%2Bb&oauth_token_secret=c%3Dd")

        assert token.token == "a+b"
        assert token.secret == "c=d"

    def test_missing_secret(self):
        with pytest.raises(TokenResponseMalformedError, match="oauth_token_secret"):
            parse_token_response("oauth_token=abc")

    def test_empty_body(self):
        with pytest.raises(TokenResponseMalformedError, match="oauth_token, oauth_token_secret"):
            parse_token_response("")


class TestTokenExchanger:
    """Test TokenExchanger.exchange."""

    def test_success(self, session):
        exchanger = TokenExchanger(session=session)

        token = exchanger.exchange("<saml2:Assertion/>", "consumer-key", DEFAULT_TOKEN_URL)

        assert token == OAuthToken(token="tok123", secret="sec456")

    def test_posts_form(self, session):
        """Test the form carries the encoded assertion and the consumer key."""
        exchanger = TokenExchanger(TransportConfig(timeout_connect=3, timeout_read=7), session)

        exchanger.exchange("<saml2:Assertion/>", "consumer-key", "https://idp.test/token")

        args, kwargs = session.post.call_args
        assert args == ("https://idp.test/token",)
        assert kwargs["data"] == {
            "saml_assertion": encode_assertion("<saml2:Assertion/>"),
            "oauth_consumer_key": "consumer-key",
        }
        assert kwargs["timeout"] == (3, 7)

    def test_rejection_decodes_www_authenticate(self, session):
        """Test a 401 raises with the URL-decoded provider diagnostic."""
        session.post.return_value = make_response(
            status_code=401,
            reason="Unauthorized",
            headers={"WWW-Authenticate": "Basic realm%3D%22test%22"},
        )

        with pytest.raises(AssertionRejectedError) as exc_info:
            TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        assert exc_info.value.status == "401 Unauthorized"
        assert exc_info.value.detail == 'Basic realm="test"'
        assert str(exc_info.value) == '401 Unauthorized Basic realm="test"'

    def test_rejection_without_header(self, session):
        session.post.return_value = make_response(status_code=500, reason="Server Error")

        with pytest.raises(AssertionRejectedError) as exc_info:
            TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        assert exc_info.value.detail == ""

    def test_rejection_is_not_retried(self, session):
        session.post.return_value = make_response(status_code=503, reason="Unavailable")

        with pytest.raises(AssertionRejectedError):
            TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        assert session.post.call_count == 1

    def test_transport_failure(self, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(AssertionRejectedError, match="refused") as exc_info:
            TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        assert exc_info.value.status is None

    def test_malformed_success_body(self, session):
        session.post.return_value = make_response(text="unexpected")

        with pytest.raises(TokenExchangeError):
            TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

    def test_injected_session_is_not_closed(self, session):
        TokenExchanger(session=session).exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        session.close.assert_not_called()

    def test_own_session_is_created_without_retries_and_closed(self, session):
        with patch(
            "intuit_cad.saml.token_exchange.create_session", return_value=session
        ) as factory:
            TokenExchanger().exchange("<a/>", "key", DEFAULT_TOKEN_URL)

        assert factory.call_args.kwargs["retries"] is False
        session.close.assert_called_once()


class TestAcquireToken:
    """Test the build, sign and exchange composition."""

    def test_exchanges_verifiable_assertion(self, test_config, private_key_path, fixed_now):
        exchanger = Mock(spec=TokenExchanger)
        exchanger.exchange.return_value = OAuthToken(token="t", secret="s")

        token = acquire_token(test_config, exchanger=exchanger, now=fixed_now)

        assert token == OAuthToken(token="t", secret="s")
        signed_xml, consumer_key, endpoint = exchanger.exchange.call_args[0]
        assert consumer_key == "consumer-key"
        assert endpoint == DEFAULT_TOKEN_URL
        assert ">customer-42<" in signed_xml
        assert ">test.provider.id<" in signed_xml
        assert SignatureVerifier.from_private_key_file(private_key_path).verify_assertion_xml(
            signed_xml
        )

    def test_missing_key_path(self, test_config):
        config = test_config.model_copy(
            update={"saml": test_config.saml.model_copy(update={"private_key_path": None})}
        )

        with pytest.raises(KeyLoadError, match="private_key_path"):
            acquire_token(config, exchanger=Mock(spec=TokenExchanger))
