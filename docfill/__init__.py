"""docfill: field extraction reconciliation and smart refinement.

Matches AI-extracted document fields onto ``{{variable}}`` placeholders
in HTML templates, and re-extracts single fields from user-drawn
regions of the source image.
"""

from docfill.strategies.template_engine import (
    UNMATCHED,
    ExtractedField,
    Hint,
    build_match_table,
    normalize_label,
    parse_variables,
    resolve,
    substitute,
)

__all__ = [
    "UNMATCHED",
    "ExtractedField",
    "Hint",
    "build_match_table",
    "normalize_label",
    "parse_variables",
    "resolve",
    "substitute",
]
