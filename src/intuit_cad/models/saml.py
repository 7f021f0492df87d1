"""Data models for SAML assertion signing and OAuth token exchange.

This module defines dataclasses for the assertion that is exchanged for an
OAuth token, the signed-info fragment that carries its digest, the signature
block embedded back into the assertion, and the resulting token pair.
"""

from dataclasses import dataclass, replace
from typing import Optional

from ..utils.exceptions import SigningError


@dataclass(frozen=True)
class Assertion:
    """SAML 2.0 assertion presented to the identity provider.

    Timestamps are pre-rendered strings because the exact text is digested;
    re-rendering a datetime would risk changing the signed bytes.

    Attributes:
        issuer_id: SAML identity provider id registered with Intuit
        user_id: Customer id the token is requested for
        reference_id: Unique assertion id (``_`` + 32 hex chars)
        time_now: Issue instant, ``YYYY-MM-DDTHH:MM:SS.000Z``
        time_before: Start of validity window (now - 5 minutes)
        time_after: End of validity window (now + 10 minutes)
        signature: Serialized ``<ds:Signature>`` block, None until signed
    """

    issuer_id: str
    user_id: str
    reference_id: str
    time_now: str
    time_before: str
    time_after: str
    signature: Optional[str] = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def with_signature(self, signature_xml: str) -> "Assertion":
        """Return a copy of this assertion carrying the given signature block.

        Raises:
            SigningError: If the assertion is already signed
        """
        if self.signature is not None:
            raise SigningError(
                f"Assertion {self.reference_id} is already signed. "
                f"Build a fresh assertion for each token request."
            )
        return replace(self, signature=signature_xml)


@dataclass(frozen=True)
class SignedInfo:
    """Digest-bearing fragment that the RSA signature is computed over.

    Attributes:
        reference_id: Reference id of the covered assertion
        digest: base64(SHA-1(serialized unsigned assertion))
    """

    reference_id: str
    digest: str


@dataclass(frozen=True)
class Signature:
    """XML signature block spliced into the assertion.

    Attributes:
        signature_value: base64 RSA-SHA1 signature over the signed-info fragment
        signed_info: Serialized signed-info XML, embedded verbatim
    """

    signature_value: str
    signed_info: str


@dataclass(frozen=True)
class OAuthToken:
    """OAuth 1.0a access token obtained from the SAML exchange."""

    token: str
    secret: str

    def __repr__(self) -> str:
        return f"OAuthToken(token={self.token!r}, secret='***')"
