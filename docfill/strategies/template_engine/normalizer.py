"""Label normalization.

Canonical keys let "Número de Factura", "numero_de_factura" and
"NUMERO DE FACTURA" compare equal.
"""

import re
import unicodedata

_SEPARATORS = re.compile(r"[\s-]+")
_DISALLOWED = re.compile(r"[^a-z0-9_]")


def normalize_label(label: str) -> str:
    """Return the canonical matching key for a field label or variable name.

    Steps, in order: decompose and drop combining marks, lowercase,
    collapse whitespace/hyphen runs into one underscore, drop anything
    outside ``[a-z0-9_]``. Total and idempotent.

    Args:
        label: Any human-readable label.

    Returns:
        The canonical key (possibly empty).
    """
    if not label:
        return ""
    decomposed = unicodedata.normalize("NFD", label)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    lowered = stripped.lower()
    underscored = _SEPARATORS.sub("_", lowered)
    return _DISALLOWED.sub("", underscored)


# Spanish/English terms that documents and templates use interchangeably.
TERM_SYNONYMS: dict[str, str] = {
    "monto": "amount",
    "importe": "amount",
    "valor": "amount",
    "numero": "number",
    "num": "number",
    "nro": "number",
    "no": "number",
    "fecha": "date",
    "factura": "invoice",
    "nombre": "name",
    "cliente": "customer",
    "client": "customer",
    "proveedor": "supplier",
    "vendor": "supplier",
    "direccion": "address",
    "telefono": "phone",
    "correo": "email",
    "orden": "order",
    "pedido": "order",
    "impuesto": "tax",
    "iva": "tax",
    "vat": "tax",
    "subtotal": "subtotal",
    "descripcion": "description",
    "cantidad": "quantity",
    "qty": "quantity",
    "precio": "price",
    "vencimiento": "due",
    "pagar": "pay",
    "ciudad": "city",
}

STOPWORDS = frozenset({"de", "del", "la", "el", "los", "las", "a", "of", "the", "to"})


def label_tokens(label: str) -> frozenset[str]:
    """Order-insensitive set of canonical terms in a label.

    ``"Monto Total"`` and ``"total_amount"`` both give ``{"amount", "total"}``.
    """
    terms = set()
    for token in normalize_label(label).split("_"):
        if not token or token in STOPWORDS:
            continue
        terms.add(TERM_SYNONYMS.get(token, token))
    return frozenset(terms)
