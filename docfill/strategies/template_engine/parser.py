"""Template variable parsing.

Variables are written as ``{{name}}`` in template markup. There is no
escaping mechanism: any ``{{...}}`` span without a closing brace inside
is a placeholder.
"""

import logging
import re
from collections.abc import Iterable

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


def parse_variables(markup: str | None) -> list[str]:
    """Extract the unique variable names referenced by template markup.

    Names are trimmed and returned in order of first appearance. Markup
    without placeholders yields an empty list.

    Args:
        markup: Template HTML (or any text) containing ``{{name}}`` tokens.

    Returns:
        De-duplicated variable names, first-seen order.
    """
    if not markup:
        return []

    variables: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(markup):
        name = match.group(1).strip()
        if name:
            variables.setdefault(name, None)
    return list(variables)


def clean_variable_name(name: str) -> str:
    """Strip surrounding braces and whitespace, e.g. ``" {{ total }} "`` -> ``"total"``."""
    return re.sub(r"^[{\s]+|[}\s]+$", "", name).strip()


def resolve_template_variables(
    markup: str | None,
    declared: Iterable[str] | None = None,
) -> list[str]:
    """Variables a template expects.

    The markup is the single source of truth; declared variable names
    (older templates store them separately) are used only when the
    markup has no placeholders.

    Args:
        markup: Template HTML content, if any.
        declared: Variable names stored alongside the template.

    Returns:
        De-duplicated variable names.
    """
    parsed = parse_variables(markup)
    if parsed or not declared:
        return parsed

    logger.debug("No placeholders in markup, falling back to declared variables")
    variables: dict[str, None] = {}
    for name in declared:
        cleaned = clean_variable_name(name)
        if cleaned:
            variables.setdefault(cleaned, None)
    return list(variables)
