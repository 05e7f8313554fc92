"""Template engine strategies.

Implements variable discovery, label normalization, field matching and
placeholder substitution for HTML templates.
"""

from docfill.strategies.template_engine.colors import build_variable_color_map, color_for
from docfill.strategies.template_engine.matcher import (
    UNMATCHED,
    FieldMatcher,
    build_match_table,
    resolve,
)
from docfill.strategies.template_engine.models import (
    ExtractedField,
    ExtractionResponse,
    Hint,
    Point,
    Rect,
)
from docfill.strategies.template_engine.naming import suggest_document_name
from docfill.strategies.template_engine.normalizer import label_tokens, normalize_label
from docfill.strategies.template_engine.parser import (
    clean_variable_name,
    parse_variables,
    resolve_template_variables,
)
from docfill.strategies.template_engine.substituter import (
    UNFILLED_MARKER,
    RenderedDocument,
    render_document,
    split_styles,
    substitute,
)

__all__ = [
    "UNFILLED_MARKER",
    "UNMATCHED",
    "ExtractedField",
    "ExtractionResponse",
    "FieldMatcher",
    "Hint",
    "Point",
    "Rect",
    "RenderedDocument",
    "build_match_table",
    "build_variable_color_map",
    "clean_variable_name",
    "color_for",
    "label_tokens",
    "normalize_label",
    "parse_variables",
    "render_document",
    "resolve",
    "resolve_template_variables",
    "split_styles",
    "substitute",
    "suggest_document_name",
]
