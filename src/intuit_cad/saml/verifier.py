"""Verification of signed SAML assertions.

Mirrors the checks the identity provider performs on an assertion before
issuing a token: the RSA-SHA1 signature over the embedded signed-info
fragment, the SHA-1 digest of the unsigned assertion, and the validity
window. Useful for diagnosing AssertionRejectedError locally.
"""

import base64
import binascii
import hashlib
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils
from lxml import etree

from ..models.saml import Assertion, Signature
from .assertion import SAML_TIME_FORMAT
from .key_manager import load_private_key
from .signed_info import compute_digest

logger = logging.getLogger(__name__)

DS_NS = "http://www.w3.org/2000/09/xmldsig#"
SAML2_NS = "urn:oasis:names:tc:SAML:2.0:assertion"

_SIGNATURE_BLOCK = re.compile(r"<ds:Signature\b.*?</ds:Signature>", re.DOTALL)
_SIGNED_INFO_BLOCK = re.compile(r"<ds:SignedInfo\b.*?</ds:SignedInfo>", re.DOTALL)


def parse_saml_time(value: str) -> datetime:
    """Parse a ``YYYY-MM-DDTHH:MM:SS.000Z`` timestamp into an aware UTC datetime."""
    if not value.endswith(".000Z"):
        raise ValueError(f"Unexpected SAML timestamp format: {value!r}")
    return datetime.strptime(value[: -len(".000Z")], SAML_TIME_FORMAT).replace(
        tzinfo=timezone.utc
    )


def parse_assertion_times(signed_xml: str) -> Tuple[datetime, datetime]:
    """Read the NotBefore / NotOnOrAfter window from serialized assertion XML.

    Raises:
        ValueError: If the XML is malformed or has no Conditions element
    """
    try:
        root = etree.fromstring(signed_xml.encode("utf-8"))
    except etree.XMLSyntaxError as e:
        raise ValueError(f"Invalid XML in SAML assertion: {e}") from e

    conditions = root.find(f"{{{SAML2_NS}}}Conditions")
    if conditions is None:
        raise ValueError("No Conditions element found in assertion")
    return (
        parse_saml_time(conditions.get("NotBefore", "")),
        parse_saml_time(conditions.get("NotOnOrAfter", "")),
    )


class SignatureVerifier:
    """Verify RSA-SHA1 signatures produced by the SAML signing path.

    Attributes:
        public_key: RSA public key matching the signing key

    Example:
        >>> verifier = SignatureVerifier.from_private_key_file(Path("certs/intuit.key"))
        >>> verifier.verify_assertion_xml(signed_xml)
        True
    """

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        self.public_key = public_key

    @classmethod
    def from_private_key_file(cls, key_path: Union[str, Path]) -> "SignatureVerifier":
        """Create a verifier from the signing key's file (public half only)."""
        return cls(load_private_key(key_path).public_key())

    def verify_digest(self, digest: bytes, signature: bytes) -> bool:
        """Check a raw RSA PKCS#1 v1.5 signature over a prehashed SHA-1 digest."""
        try:
            self.public_key.verify(
                signature,
                digest,
                padding.PKCS1v15(),
                utils.Prehashed(hashes.SHA1()),
            )
        except (InvalidSignature, ValueError):
            return False
        return True

    def verify_signature(self, signature: Signature) -> bool:
        """Check a Signature's value against its embedded signed-info XML."""
        try:
            raw = base64.b64decode(signature.signature_value, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("SignatureValue is not valid base64")
            return False
        digest = hashlib.sha1(signature.signed_info.encode("utf-8")).digest()
        return self.verify_digest(digest, raw)

    def verify_assertion_xml(self, signed_xml: str) -> bool:
        """Verify a serialized signed assertion end to end.

        Checks that the signed-info references the assertion id, that the
        digest matches the assertion with its signature block removed, and
        that the signature value verifies over the signed-info fragment.

        Raises:
            ValueError: If the XML is malformed or has no signature block
        """
        try:
            root = etree.fromstring(signed_xml.encode("utf-8"))
        except etree.XMLSyntaxError as e:
            raise ValueError(f"Invalid XML in signed SAML assertion: {e}") from e

        ns = {"ds": DS_NS}
        sig_value = root.findtext(".//ds:Signature/ds:SignatureValue", namespaces=ns)
        digest_value = root.findtext(".//ds:Signature/ds:SignedInfo//ds:DigestValue", namespaces=ns)
        reference = root.find(".//ds:Signature/ds:SignedInfo/ds:Reference", namespaces=ns)

        signature_match = _SIGNATURE_BLOCK.search(signed_xml)
        if sig_value is None or digest_value is None or reference is None or not signature_match:
            raise ValueError("No Signature element found in assertion")

        assertion_id = root.get("ID")
        if reference.get("URI") != f"#{assertion_id}":
            logger.warning(
                f"Signed-info reference {reference.get('URI')} does not match assertion {assertion_id}"
            )
            return False

        unsigned_xml = signed_xml[: signature_match.start()] + signed_xml[signature_match.end():]
        if compute_digest(unsigned_xml) != digest_value:
            logger.warning(
                f"Digest mismatch for assertion {assertion_id}: content modified after signing"
            )
            return False

        signed_info_match = _SIGNED_INFO_BLOCK.search(signature_match.group(0))
        if not signed_info_match:
            raise ValueError("No SignedInfo element found in signature")

        is_valid = self.verify_signature(
            Signature(signature_value=sig_value, signed_info=signed_info_match.group(0))
        )
        if is_valid:
            logger.info(f"Signature verification successful: {assertion_id}")
        else:
            logger.warning(f"Signature verification failed: {assertion_id}")
        return is_valid

    def validate_timestamps(self, assertion: Assertion, now: Optional[datetime] = None) -> bool:
        """Check that ``now`` falls inside the assertion validity window."""
        now = now or datetime.now(timezone.utc)
        not_before = parse_saml_time(assertion.time_before)
        not_on_or_after = parse_saml_time(assertion.time_after)

        if now < not_before:
            logger.warning(
                f"SAML assertion {assertion.reference_id} not yet valid. "
                f"NotBefore: {assertion.time_before}, Current: {now.isoformat()}"
            )
            return False
        if now >= not_on_or_after:
            logger.warning(
                f"SAML assertion {assertion.reference_id} expired. "
                f"NotOnOrAfter: {assertion.time_after}, Current: {now.isoformat()}"
            )
            return False
        return True

    def verify_and_validate(
        self, assertion: Assertion, signed_xml: str, now: Optional[datetime] = None
    ) -> Tuple[bool, str]:
        """Verify the signature and validity window in one call.

        Returns:
            Tuple of (is_valid, message)
        """
        try:
            if not self.verify_assertion_xml(signed_xml):
                return False, "Signature verification failed"
        except ValueError as e:
            return False, f"Validation error: {e}"

        if not self.validate_timestamps(assertion, now):
            return False, "Assertion expired or not yet valid"

        return True, "Signature and timestamp validation successful"
