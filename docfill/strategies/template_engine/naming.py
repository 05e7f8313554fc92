"""Output document naming."""

import re
from collections.abc import Iterable

from docfill.strategies.template_engine.models import ExtractedField

_IDENTIFIER_LABEL = re.compile(
    r"number|id|folio|factura|order|invoice|consecutivo", re.IGNORECASE
)
_MAX_IDENTIFIER_LENGTH = 20


def suggest_document_name(template_name: str, fields: Iterable[ExtractedField]) -> str:
    """Name a filled document after its template and identifying number.

    ``"Invoice"`` with a field ``invoice_number = "F-102"`` becomes
    ``"Invoice #F-102"``.
    """
    for field in fields:
        value = field.value.strip()
        if (
            _IDENTIFIER_LABEL.search(field.label)
            and value
            and len(value) < _MAX_IDENTIFIER_LENGTH
        ):
            return f"{template_name} #{value}"
    return template_name
