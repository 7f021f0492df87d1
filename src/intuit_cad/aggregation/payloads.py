"""XML request bodies for institution logins and challenge responses."""

import logging
from typing import Any, Iterable, Sequence

from lxml import etree

from ..models.challenge import Choice, Credential
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

INSTITUTION_LOGIN_NS = "http://schema.intuit.com/platform/fdatafeed/institutionlogin/v1"
CHALLENGE_NS = "http://schema.intuit.com/platform/fdatafeed/challenge/v1"

LOGIN_NSMAP = {None: INSTITUTION_LOGIN_NS}
CHALLENGE_NSMAP = {"v11": CHALLENGE_NS}


def _to_string(root: etree._Element) -> str:
    return etree.tostring(root, encoding="unicode")


def build_credentials_payload(credentials: Iterable[Credential]) -> str:
    """Build an ``InstitutionLogin`` body carrying login credentials.

    Args:
        credentials: Name/value pairs in the order the institution expects

    Returns:
        Serialized XML (no declaration)

    Raises:
        ValidationError: If no credentials are given or a name is empty

    Example:
        >>> build_credentials_payload([Credential("Banking Userid", "direct")])
        '<InstitutionLogin xmlns="http://schema.intuit.com/...'
    """
    credentials = list(credentials)
    if not credentials:
        raise ValidationError("At least one credential is required")

    root = etree.Element(f"{{{INSTITUTION_LOGIN_NS}}}InstitutionLogin", nsmap=LOGIN_NSMAP)
    container = etree.SubElement(root, f"{{{INSTITUTION_LOGIN_NS}}}credentials")
    for credential in credentials:
        if not credential.name:
            raise ValidationError("Credential name must be non-empty")
        entry = etree.SubElement(container, f"{{{INSTITUTION_LOGIN_NS}}}credential")
        etree.SubElement(entry, f"{{{INSTITUTION_LOGIN_NS}}}name").text = credential.name
        etree.SubElement(entry, f"{{{INSTITUTION_LOGIN_NS}}}value").text = credential.value

    logger.debug(f"Built credentials payload with {len(credentials)} credential(s)")
    return _to_string(root)


def answer_text(answer: Any) -> str:
    """Return the wire value of an answer: a Choice submits its ``val``."""
    if isinstance(answer, Choice):
        return answer.value
    if answer is None:
        raise ValidationError("Challenge answers must not be None")
    return str(answer)


def build_challenge_response_payload(answers: Sequence[Any]) -> str:
    """Build an ``InstitutionLogin`` body answering MFA questions.

    Each answer becomes one ``v11:response`` element, in order.

    Raises:
        ValidationError: If there are no answers or one of them is None
    """
    if not answers:
        raise ValidationError("At least one challenge answer is required")

    root = etree.Element(f"{{{INSTITUTION_LOGIN_NS}}}InstitutionLogin", nsmap=LOGIN_NSMAP)
    container = etree.SubElement(root, f"{{{INSTITUTION_LOGIN_NS}}}challengeResponses")
    for answer in answers:
        response = etree.SubElement(
            container, f"{{{CHALLENGE_NS}}}response", nsmap=CHALLENGE_NSMAP
        )
        response.text = answer_text(answer)

    return _to_string(root)
