"""XML signature construction and assertion signing.

This module turns a signed-info fragment into the ``<ds:Signature>`` block
expected by Intuit and splices it into the assertion. The signed-info XML
travels verbatim inside the signature; the provider does not re-derive it.
"""

import base64
import hashlib
import logging
from pathlib import Path
from typing import Optional, Union

from ..models.saml import Assertion, Signature, SignedInfo
from .assertion import serialize_assertion
from .signed_info import SignedInfoBuilder, serialize_signed_info
from .signer import Signer
from .template_loader import SIGNATURE_TEMPLATE, render_template

logger = logging.getLogger(__name__)


class SignatureBuilder:
    """Build signature blocks over signed-info fragments.

    Attributes:
        signer: Signer used for the RSA-SHA1 operation

    Example:
        >>> signed_info = SignedInfoBuilder().build(assertion)
        >>> signature = SignatureBuilder().build(signed_info, Path("certs/intuit.key"))
        >>> "<ds:SignatureValue>" in serialize_signature(signature)
        True
    """

    def __init__(self, signer: Optional[Signer] = None) -> None:
        self.signer = signer or Signer()

    def build(self, signed_info: SignedInfo, private_key_path: Union[str, Path]) -> Signature:
        """Sign a signed-info fragment.

        Args:
            signed_info: Fragment to sign
            private_key_path: Path to the PEM RSA private key

        Returns:
            Signature with base64 signature value and the signed-info XML

        Raises:
            KeyLoadError: If the key file cannot be read
            KeyFormatError: If the key is not a PEM RSA private key
            SigningError: If the RSA operation fails
        """
        signed_info_xml = serialize_signed_info(signed_info)
        digest = hashlib.sha1(signed_info_xml.encode("utf-8")).digest()
        raw_signature = self.signer.sign(digest, private_key_path)
        return Signature(
            signature_value=base64.b64encode(raw_signature).decode("ascii"),
            signed_info=signed_info_xml,
        )


def serialize_signature(signature: Signature) -> str:
    """Render the ``<ds:Signature>`` block."""
    return render_template(
        SIGNATURE_TEMPLATE,
        {
            "SignedInfo": signature.signed_info,
            "SignatureValue": signature.signature_value,
        },
        raw_fields=("SignedInfo",),
    )


def sign_assertion(
    assertion: Assertion,
    private_key_path: Union[str, Path],
    signature_builder: Optional[SignatureBuilder] = None,
) -> Assertion:
    """Digest, sign and embed the signature into an assertion.

    Args:
        assertion: Unsigned assertion
        private_key_path: Path to the PEM RSA private key
        signature_builder: Optional builder (custom signer, no key cache, ...)

    Returns:
        Signed copy of the assertion

    Raises:
        KeyLoadError, KeyFormatError, SigningError: On key or signing failure
    """
    builder = signature_builder or SignatureBuilder()
    signed_info = SignedInfoBuilder().build(assertion)
    signature = builder.build(signed_info, private_key_path)
    signed = assertion.with_signature(serialize_signature(signature))
    logger.info(f"SAML assertion {assertion.reference_id} signed")
    return signed


def signed_assertion_xml(assertion: Assertion, private_key_path: Union[str, Path]) -> str:
    """Sign an assertion and return the XML sent to the token endpoint."""
    return serialize_assertion(sign_assertion(assertion, private_key_path))
