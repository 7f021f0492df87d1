"""SAML assertion construction and serialization.

Builds the assertion presented to Intuit's SAML token endpoint. Each
token request gets a fresh assertion with a unique reference id and a
validity window of five minutes back and ten minutes forward, which
absorbs clock drift between client and identity provider.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..models.saml import Assertion
from .template_loader import ASSERTION_TEMPLATE, render_template

logger = logging.getLogger(__name__)

VALIDITY_BEFORE = timedelta(minutes=5)
VALIDITY_AFTER = timedelta(minutes=10)

SAML_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def generate_reference_id() -> str:
    """Generate a unique assertion reference id.

    XML ids cannot start with a digit, so the UUID hex is prefixed with an
    underscore.

    Returns:
        ``_`` followed by 32 hex characters
    """
    return f"_{uuid.uuid4().hex}"


def format_saml_time(moment: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.000Z`` in UTC.

    Naive datetimes are taken to be UTC. Sub-second precision is dropped;
    the provider expects a literal ``.000`` millisecond field.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return f"{moment.astimezone(timezone.utc).strftime(SAML_TIME_FORMAT)}.000Z"


class AssertionBuilder:
    """Build unsigned SAML assertions for the token exchange.

    Attributes:
        clock: Callable returning the current aware datetime (injectable for tests)

    Example:
        >>> builder = AssertionBuilder()
        >>> assertion = builder.build("intuit.provider.id", "customer-42")
        >>> assertion.reference_id.startswith("_")
        True
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def build(
        self,
        issuer_id: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> Assertion:
        """Create a fresh unsigned assertion.

        Args:
            issuer_id: SAML identity provider id
            user_id: Customer id the token is for
            now: Issue instant; defaults to the builder clock

        Returns:
            Unsigned Assertion

        Raises:
            ValueError: If issuer_id or user_id is empty
        """
        if not issuer_id:
            raise ValueError("issuer_id must be a non-empty SAML provider id")
        if not user_id:
            raise ValueError("user_id must be a non-empty customer id")

        now = now or self.clock()
        assertion = Assertion(
            issuer_id=issuer_id,
            user_id=user_id,
            reference_id=generate_reference_id(),
            time_now=format_saml_time(now),
            time_before=format_saml_time(now - VALIDITY_BEFORE),
            time_after=format_saml_time(now + VALIDITY_AFTER),
        )
        logger.debug(
            f"Built SAML assertion {assertion.reference_id} for customer {user_id}, "
            f"valid {assertion.time_before} to {assertion.time_after}"
        )
        return assertion


def serialize_assertion(assertion: Assertion) -> str:
    """Render the assertion XML exactly as it is digested and transmitted.

    An unsigned assertion renders with an empty signature slot; that form
    is the one the signed-info digest covers.
    """
    return render_template(
        ASSERTION_TEMPLATE,
        {
            "IssuerId": assertion.issuer_id,
            "UserId": assertion.user_id,
            "ReferenceId": assertion.reference_id,
            "TimeNow": assertion.time_now,
            "TimeBefore": assertion.time_before,
            "TimeAfter": assertion.time_after,
            "Signature": assertion.signature or "",
        },
        raw_fields=("Signature",),
    )
