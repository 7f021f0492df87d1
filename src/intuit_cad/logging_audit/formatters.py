"""Custom log formatters for intuit-cad.

This module provides a formatter that masks OAuth tokens, SAML assertions
and institution credentials before records reach a handler.
"""

import logging
import re
from typing import List, Tuple

REDACTED = "[REDACTED]"

SECRET_FIELDS = (
    "oauth_token_secret",
    "oauth_token",
    "oauth_signature",
    "saml_assertion",
)


class SecretRedactingFormatter(logging.Formatter):
    """Formatter that masks secrets in formatted log messages.

    Covers ``name=value`` pairs (form bodies, query strings, OAuth headers),
    ``"name": "value"`` pairs, and the text of credential ``<value>`` and
    challenge ``<response>`` elements.

    Attributes:
        redact_secrets: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = SecretRedactingFormatter(redact_secrets=True)
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_secrets: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_secrets = redact_secrets

        fields = "|".join(SECRET_FIELDS)
        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # oauth_token=abc, oauth_token="abc", "oauth_token": "abc"
            (
                re.compile(rf"\b({fields})([\"']?\s*[=:]\s*[\"']?)([^\"'&,\s]+)"),
                rf"\1\2{REDACTED}",
            ),
            # <value>secret</value>, <v11:response>answer</v11:response>
            (
                re.compile(r"(<(?:\w+:)?(value|response)>)(.*?)(</(?:\w+:)?\2>)", re.DOTALL),
                rf"\1{REDACTED}\4",
            ),
        ]

    def redact(self, message: str) -> str:
        """Apply every redaction pattern to a message."""
        for pattern, replacement in self.patterns:
            message = pattern.sub(replacement, message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if self.redact_secrets:
            formatted = self.redact(formatted)
        return formatted
