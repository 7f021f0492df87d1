"""Models module.

This module provides data models and dataclasses for the application.
"""

from intuit_cad.models.challenge import (
    Challenge,
    ChallengeSession,
    Choice,
    ContextType,
    Credential,
    LoginResult,
    LoginState,
)
from intuit_cad.models.saml import Assertion, OAuthToken, Signature, SignedInfo

__all__ = [
    "Assertion",
    "SignedInfo",
    "Signature",
    "OAuthToken",
    "Challenge",
    "ChallengeSession",
    "Choice",
    "ContextType",
    "Credential",
    "LoginResult",
    "LoginState",
]
