"""SAML assertion construction, signing, verification and token exchange.

This module provides functionality for:
- Building SAML 2.0 assertions from Intuit's XML templates
- Digesting and signing them with RSA-SHA1 over a PEM private key
- Verifying signed assertions locally
- Exchanging signed assertions for OAuth 1.0a access tokens
"""

from intuit_cad.saml.assertion import (
    AssertionBuilder,
    format_saml_time,
    generate_reference_id,
    serialize_assertion,
)
from intuit_cad.saml.key_manager import clear_key_cache, load_private_key
from intuit_cad.saml.signature import (
    SignatureBuilder,
    serialize_signature,
    sign_assertion,
    signed_assertion_xml,
)
from intuit_cad.saml.signed_info import SignedInfoBuilder, serialize_signed_info
from intuit_cad.saml.signer import Signer
from intuit_cad.saml.token_exchange import (
    TokenExchanger,
    acquire_token,
    encode_assertion,
    parse_token_response,
)
from intuit_cad.saml.verifier import SignatureVerifier

__all__ = [
    # Assertion construction
    "AssertionBuilder",
    "format_saml_time",
    "generate_reference_id",
    "serialize_assertion",
    # Keys and signing
    "load_private_key",
    "clear_key_cache",
    "Signer",
    "SignedInfoBuilder",
    "serialize_signed_info",
    "SignatureBuilder",
    "serialize_signature",
    "sign_assertion",
    "signed_assertion_xml",
    "SignatureVerifier",
    # Token exchange
    "TokenExchanger",
    "acquire_token",
    "encode_assertion",
    "parse_token_response",
]
