"""intuit-cad: client for Intuit's Customer Account Data API.

Acquires OAuth 1.0a access tokens by exchanging RSA-SHA1 signed SAML 2.0
assertions, then aggregates institution logins, accounts and transactions,
including multi-factor challenge handling.
"""

__version__ = "0.1.0"

from intuit_cad.aggregation import CustomerAccountDataClient
from intuit_cad.config import Config, load_config
from intuit_cad.models import (
    Challenge,
    ChallengeSession,
    Choice,
    ContextType,
    Credential,
    LoginResult,
    LoginState,
    OAuthToken,
)

__all__ = [
    "__version__",
    "CustomerAccountDataClient",
    "Config",
    "load_config",
    "Challenge",
    "ChallengeSession",
    "Choice",
    "ContextType",
    "Credential",
    "LoginResult",
    "LoginState",
    "OAuthToken",
]
