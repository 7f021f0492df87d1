"""Signed-info construction for SAML assertions."""

import base64
import hashlib
import logging
from dataclasses import replace

from ..models.saml import Assertion, SignedInfo
from .assertion import serialize_assertion
from .template_loader import SIGNED_INFO_TEMPLATE, render_template

logger = logging.getLogger(__name__)


def compute_digest(xml_text: str) -> str:
    """Return base64(SHA-1(xml_text as UTF-8))."""
    sha = hashlib.sha1(xml_text.encode("utf-8")).digest()
    return base64.b64encode(sha).decode("ascii")


class SignedInfoBuilder:
    """Digest an assertion into a signed-info fragment.

    The digest always covers the unsigned form of the assertion
    (enveloped-signature transform), so building from an already signed
    assertion yields the same SignedInfo.
    """

    def build(self, assertion: Assertion) -> SignedInfo:
        unsigned = replace(assertion, signature=None) if assertion.is_signed else assertion
        digest = compute_digest(serialize_assertion(unsigned))
        logger.debug(f"Computed digest for assertion {assertion.reference_id}")
        return SignedInfo(reference_id=assertion.reference_id, digest=digest)


def serialize_signed_info(signed_info: SignedInfo) -> str:
    """Render the ``<ds:SignedInfo>`` fragment that the signature covers."""
    return render_template(
        SIGNED_INFO_TEMPLATE,
        {"ReferenceId": signed_info.reference_id, "Digest": signed_info.digest},
    )
