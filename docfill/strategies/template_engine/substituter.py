"""Template substitution.

Replaces every ``{{variable}}`` in template markup with the matched
field value, or with a visible marker when nothing matches.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from docfill.strategies.template_engine.matcher import UNMATCHED, FieldMatcher
from docfill.strategies.template_engine.models import ExtractedField

logger = logging.getLogger(__name__)

UNFILLED_MARKER = "___"

_PLACEHOLDER = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
_STYLE_BLOCK = re.compile(r"<style[^>]*>([\s\S]*?)</style>", re.IGNORECASE)


@dataclass(frozen=True)
class RenderedDocument:
    """Filled template body with its stylesheet split out.

    Attributes:
        html: Markup with placeholders replaced and ``<style>`` blocks removed.
        css: Concatenated contents of the removed ``<style>`` blocks.
    """

    html: str
    css: str


def substitute(
    markup: str,
    fields: Iterable[ExtractedField],
    unfilled_marker: str = UNFILLED_MARKER,
) -> str:
    """Fill every placeholder occurrence in markup.

    Only the ``{{...}}`` tokens change; the rest of the markup is kept
    byte-for-byte.

    Args:
        markup: Template markup.
        fields: Current extraction result.
        unfilled_marker: Text for placeholders with no matching field.

    Returns:
        The filled markup.
    """
    if not markup:
        return markup or ""

    matcher = FieldMatcher(fields)
    unmatched: set[str] = set()

    def _replace(match: re.Match) -> str:
        name = match.group(1).strip()
        value = matcher.resolve(name) if name else UNMATCHED
        if value is UNMATCHED:
            unmatched.add(name)
            return unfilled_marker
        return value

    filled = _PLACEHOLDER.sub(_replace, markup)

    if unmatched:
        logger.debug(f"Unfilled placeholders: {sorted(unmatched)}")
    return filled


def split_styles(markup: str) -> tuple[str, str]:
    """Remove ``<style>`` blocks from markup.

    Returns:
        Tuple of (markup without style blocks, concatenated CSS).
    """
    css = "".join(block + "\n" for block in _STYLE_BLOCK.findall(markup))
    return _STYLE_BLOCK.sub("", markup), css


def render_document(
    markup: str,
    fields: Iterable[ExtractedField],
    unfilled_marker: str = UNFILLED_MARKER,
) -> RenderedDocument:
    """Split styles out of a template and fill its placeholders."""
    body, css = split_styles(markup)
    return RenderedDocument(
        html=substitute(body, fields, unfilled_marker=unfilled_marker),
        css=css,
    )
