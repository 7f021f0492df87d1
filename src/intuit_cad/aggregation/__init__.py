"""Account aggregation: institution logins, MFA challenges and account data."""

from .challenge_parser import (
    get_header,
    is_challenge_response,
    parse_challenge_session,
    parse_challenges,
)
from .client import CustomerAccountDataClient
from .payloads import build_challenge_response_payload, build_credentials_payload

__all__ = [
    "CustomerAccountDataClient",
    "parse_challenge_session",
    "parse_challenges",
    "is_challenge_response",
    "get_header",
    "build_credentials_payload",
    "build_challenge_response_payload",
]
