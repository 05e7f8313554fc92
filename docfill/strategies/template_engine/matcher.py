"""Field matching.

Maps template variable names onto extracted field values despite
differences in accents, casing, separators and word order.
"""

from collections.abc import Iterable

from docfill.strategies.template_engine.models import ExtractedField
from docfill.strategies.template_engine.normalizer import label_tokens, normalize_label


class _Unmatched:
    """Sentinel for a variable with no corresponding field."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNMATCHED"

    def __bool__(self) -> bool:
        return False


UNMATCHED = _Unmatched()

MatchTable = dict[str, str]


def build_match_table(fields: Iterable[ExtractedField]) -> MatchTable:
    """Register every field value under three key forms.

    Keys are the normalized label, the lowercased label and the verbatim
    label. Later fields overwrite earlier ones on key collisions.

    Args:
        fields: Extracted fields, in result order.

    Returns:
        Mapping of key form to value.
    """
    table: MatchTable = {}
    for field in fields:
        value = field.value or ""
        table[normalize_label(field.label)] = value
        table[field.label.lower()] = value
        table[field.label] = value
    return table


def resolve(variable_name: str, table: MatchTable) -> str | _Unmatched:
    """Look up a variable in a match table.

    Order: verbatim name, lowercased name, normalized name, a scan
    comparing the normalized form of every registered key, and finally
    a scan comparing term sets (``"Monto Total"`` vs ``total_amount``).

    Args:
        variable_name: Variable as written in the template (already trimmed).
        table: Output of :func:`build_match_table`.

    Returns:
        The matched value, or ``UNMATCHED``.
    """
    if variable_name in table:
        return table[variable_name]

    lowered = variable_name.lower()
    if lowered in table:
        return table[lowered]

    normalized = normalize_label(variable_name)
    if not normalized:
        return UNMATCHED

    if normalized in table:
        return table[normalized]

    for key, value in table.items():
        if normalize_label(key) == normalized:
            return value

    terms = label_tokens(variable_name)
    if terms:
        for key, value in table.items():
            if label_tokens(key) == terms:
                return value

    return UNMATCHED


class FieldMatcher:
    """Resolves variables against a fixed set of fields.

    Build a new matcher whenever the extraction result changes; the
    table is never updated incrementally.
    """

    def __init__(self, fields: Iterable[ExtractedField]) -> None:
        self._table = build_match_table(fields)

    def resolve(self, variable_name: str) -> str | _Unmatched:
        return resolve(variable_name, self._table)

    def resolve_all(self, variable_names: Iterable[str]) -> dict[str, str | _Unmatched]:
        return {name: self.resolve(name) for name in variable_names}
