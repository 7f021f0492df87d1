"""Parsing of MFA challenge responses into resumable challenge sessions.

When an institution login needs multi-factor authentication the API
answers with an error whose JSON body looks like::

    {"challenge": [
        {"text": ["What is your first pet's name?"]},
        {"choice": ["Pick your city", {"val": "1", "text": "Boston"},
                                       {"val": "2", "text": "Denver"}]}
    ]}

and whose ``Challengesessionid`` / ``Challengenodeid`` headers correlate
the answer with the paused login. Each group maps to sequences whose first
element is the question and whose remaining elements are choices. Every
shape violation raises ChallengeFormatError: an empty or partial challenge
list would leave the user unable to finish the login.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, List, Optional

from ..models.challenge import Challenge, ChallengeSession, Choice, ContextType
from ..utils.exceptions import ChallengeFormatError

logger = logging.getLogger(__name__)

SESSION_ID_HEADER = "Challengesessionid"
NODE_ID_HEADER = "Challengenodeid"


def _is_sequence(value: Any) -> bool:
    """True for lists and tuples, false for strings and bytes."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Look up a header case-insensitively."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def is_challenge_response(data: Any, headers: Mapping[str, str]) -> bool:
    """Tell whether an error response is an MFA challenge rather than a failure."""
    if isinstance(data, Mapping) and "challenge" in data:
        return True
    return get_header(headers, SESSION_ID_HEADER) is not None


def _parse_choice(raw: Any, where: str) -> Choice:
    """Parse one '{"val": ..., "text": ...}' choice object."""
    if not isinstance(raw, Mapping):
        raise ChallengeFormatError(f"{where}: choice must be an object, got {type(raw).__name__}")
    for field in ("val", "text"):
        if field not in raw:
            raise ChallengeFormatError(f"{where}: choice is missing '{field}'")
        if not isinstance(raw[field], str):
            raise ChallengeFormatError(
                f"{where}: choice '{field}' must be a string, got {type(raw[field]).__name__}"
            )
    return Choice(value=raw["val"], text=raw["text"])


def _parse_challenge(entry: Any, where: str) -> Challenge:
    """Parse one '[question, choice, ...]' entry."""
    if not _is_sequence(entry) or len(entry) == 0:
        raise ChallengeFormatError(f"{where}: expected a non-empty list [question, choices...]")
    question = entry[0]
    if not isinstance(question, str):
        raise ChallengeFormatError(
            f"{where}: question must be a string, got {type(question).__name__}"
        )
    choices = [
        _parse_choice(raw, f"{where}[{index}]")
        for index, raw in enumerate(entry[1:], start=1)
    ]
    return Challenge(question=question, choices=choices)


def parse_challenges(body: Any) -> List[Challenge]:
    """Parse the ``challenge`` field of an MFA error body.

    Raises:
        ChallengeFormatError: If any field is missing or has the wrong shape
    """
    if not isinstance(body, Mapping):
        raise ChallengeFormatError(
            f"Challenge body must be a JSON object, got {type(body).__name__}"
        )
    if "challenge" not in body:
        raise ChallengeFormatError("Challenge body has no 'challenge' field")

    groups = body["challenge"]
    if not _is_sequence(groups):
        raise ChallengeFormatError(
            f"'challenge' must be a list, got {type(groups).__name__}"
        )

    challenges: List[Challenge] = []
    for group_index, group in enumerate(groups):
        if not isinstance(group, Mapping):
            raise ChallengeFormatError(
                f"challenge[{group_index}] must be an object, got {type(group).__name__}"
            )
        if not group:
            raise ChallengeFormatError(f"challenge[{group_index}] is an empty object")
        # JSON object key order is preserved by the decoder
        for key, entry in group.items():
            challenges.append(_parse_challenge(entry, f"challenge[{group_index}].{key}"))

    if not challenges:
        raise ChallengeFormatError("Challenge body contains no questions")
    return challenges


def parse_challenge_session(
    context_type: ContextType,
    body: Any,
    headers: Mapping[str, str],
    institution_id: Optional[str] = None,
    login_id: Optional[str] = None,
) -> ChallengeSession:
    """Build a resumable ChallengeSession from an MFA error response.

    Args:
        context_type: Flow that produced the challenge
        body: Decoded JSON error body
        headers: Response headers
        institution_id: Institution being logged in to (DISCOVER_AND_ADD)
        login_id: Existing login being updated (UPDATE_LOGIN)

    Returns:
        ChallengeSession with challenges in source order

    Raises:
        ChallengeFormatError: On malformed body, missing correlation headers,
            or an identifier that does not match the context type
    """
    if context_type is ContextType.DISCOVER_AND_ADD:
        if not institution_id or login_id:
            raise ChallengeFormatError(
                "A discover-and-add challenge session needs an institution_id and no login_id"
            )
    elif not login_id or institution_id:
        raise ChallengeFormatError(
            "An update-login challenge session needs a login_id and no institution_id"
        )

    session_id = get_header(headers, SESSION_ID_HEADER)
    node_id = get_header(headers, NODE_ID_HEADER)
    missing = [
        name
        for name, value in ((SESSION_ID_HEADER, session_id), (NODE_ID_HEADER, node_id))
        if not value
    ]
    if missing:
        raise ChallengeFormatError(f"Challenge response is missing headers: {', '.join(missing)}")

    challenges = parse_challenges(body)
    logger.info(
        f"MFA challenge received ({context_type.value}): {len(challenges)} question(s)"
    )
    return ChallengeSession(
        context_type=context_type,
        session_id=session_id,
        node_id=node_id,
        challenges=challenges,
        institution_id=institution_id,
        login_id=login_id,
    )
