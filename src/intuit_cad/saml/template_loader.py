"""SAML XML template loading and rendering.

The assertion, signed-info and signature fragments are rendered from XML
templates shipped with the package. Tag names, namespaces and nesting must
match Intuit's SAML schema exactly, and the rendered text is what gets
digested and signed, so rendering is a plain single-pass substitution with
no reformatting.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Mapping, Optional
from xml.sax.saxutils import escape

from lxml import etree

from ..utils.exceptions import TemplateLoadError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

ASSERTION_TEMPLATE = "saml_assertion"
SIGNED_INFO_TEMPLATE = "saml_signed"
SIGNATURE_TEMPLATE = "saml_signature"

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

# Attribute-safe escaping; values land in both text and attribute positions
_ESCAPE_ENTITIES = {'"': "&quot;"}

_template_cache: dict[str, str] = {}


def load_template(name: str, template_dir: Optional[Path] = None) -> str:
    """Load a SAML template by name, validating it is well-formed XML.

    Args:
        name: Template name without extension (e.g. ``saml_assertion``)
        template_dir: Directory to load from. Defaults to the packaged templates.

    Returns:
        Template text with ``{{Field}}`` placeholders

    Raises:
        TemplateLoadError: If the file is missing, unreadable or malformed

    Example:
        >>> template = load_template("saml_signed")
        >>> assert "{{Digest}}" in template
    """
    template_path = (template_dir or TEMPLATE_DIR) / f"{name}.xml"
    cache_key = str(template_path.resolve())
    if cache_key in _template_cache:
        return _template_cache[cache_key]

    try:
        content = template_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        error_msg = (
            f"SAML template not found: {template_path}. "
            f"Reinstall the package or check the template directory."
        )
        logger.error(error_msg)
        raise TemplateLoadError(error_msg) from e
    except (OSError, UnicodeDecodeError) as e:
        error_msg = f"Cannot read SAML template {template_path}: {e}"
        logger.error(error_msg)
        raise TemplateLoadError(error_msg) from e

    try:
        etree.fromstring(content.encode("utf-8"))
    except etree.XMLSyntaxError as e:
        error_msg = (
            f"Malformed XML in SAML template {template_path} at line {e.lineno}: {e.msg}"
        )
        logger.error(error_msg)
        raise TemplateLoadError(error_msg) from e

    _template_cache[cache_key] = content
    logger.debug(f"SAML template loaded: {template_path.name}")
    return content


def extract_placeholders(template_xml: str) -> set[str]:
    """Return the set of placeholder names used in a template."""
    return set(PLACEHOLDER_PATTERN.findall(template_xml))


def render_template(
    name: str,
    values: Mapping[str, str],
    raw_fields: Iterable[str] = (),
    template_dir: Optional[Path] = None,
) -> str:
    """Render a SAML template with the given placeholder values.

    Values are XML-escaped except for ``raw_fields``, which carry
    pre-rendered XML fragments (the signature and signed-info blocks).
    Substitution is single-pass, so a value containing ``{{...}}`` is never
    expanded again.

    Args:
        name: Template name without extension
        values: Placeholder name to value mapping
        raw_fields: Placeholder names whose values are inserted verbatim
        template_dir: Optional override of the template directory

    Returns:
        Rendered XML text

    Raises:
        TemplateLoadError: If the template is invalid or a placeholder has no value
    """
    template_xml = load_template(name, template_dir)

    missing = extract_placeholders(template_xml) - values.keys()
    if missing:
        raise TemplateLoadError(
            f"Missing values for template {name}: {sorted(missing)}"
        )

    raw = frozenset(raw_fields)

    def _substitute(match: "re.Match[str]") -> str:
        field = match.group(1)
        value = values[field]
        return value if field in raw else escape(value, _ESCAPE_ENTITIES)

    return PLACEHOLDER_PATTERN.sub(_substitute, template_xml)


def clear_template_cache() -> None:
    """Clear cached templates (used when templates are swapped in tests)."""
    _template_cache.clear()
    logger.debug("SAML template cache cleared")
