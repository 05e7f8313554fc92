"""Extraction result store.

Holds the current best-known fields for one document review session.
All writes go through one lock; readers get snapshots, never a
half-applied merge.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from docfill.strategies.template_engine.models import ExtractedField

logger = logging.getLogger(__name__)


def merge_field(
    fields: Sequence[ExtractedField],
    field: ExtractedField,
) -> list[ExtractedField]:
    """Return ``fields`` with ``field`` merged in.

    The first field with the same label has its value and confidence
    replaced (position kept); otherwise ``field`` is appended.
    """
    merged = list(fields)
    for index, existing in enumerate(merged):
        if existing.label == field.label:
            merged[index] = existing.model_copy(
                update={"value": field.value, "confidence": field.confidence}
            )
            return merged
    merged.append(field)
    return merged


class ExtractionResultStore:
    """Single-owner mutable list of extracted fields.

    Mutations are field-level replacements or appends. Once closed (the
    review session ended), further writes are ignored so late results
    from a previous document never land in a new one.
    """

    def __init__(self, fields: Iterable[ExtractedField] | None = None) -> None:
        self._fields: list[ExtractedField] = list(fields or [])
        self._lock = asyncio.Lock()
        self._closed = False
        self._version = 0
        self._written: dict[str, int] = {}

    def snapshot(self) -> list[ExtractedField]:
        """Copy of the current fields."""
        return list(self._fields)

    def get(self, label: str) -> ExtractedField | None:
        for field in self._fields:
            if field.label == label:
                return field
        return None

    @property
    def version(self) -> int:
        """Incremented on every applied write."""
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def merge(self, field: ExtractedField) -> bool:
        """Merge one field; the last merge for a label wins.

        Returns:
            False if the store is closed and the field was dropped.
        """
        async with self._lock:
            if self._closed:
                logger.info(f"Dropping late result for '{field.label}': session closed")
                return False
            self._fields = merge_field(self._fields, field)
            self._version += 1
            self._written[field.label] = self._version
            return True

    async def replace_all(
        self,
        fields: Iterable[ExtractedField],
        since_version: int | None = None,
    ) -> bool:
        """Replace the whole result, e.g. after bulk extraction.

        Args:
            fields: The new result.
            since_version: Store version observed when the new result was
                requested. Fields merged after that version are kept in
                place of the incoming ones with the same label.

        Returns:
            False if the store is closed and the result was dropped.
        """
        async with self._lock:
            if self._closed:
                logger.info("Dropping bulk extraction result: session closed")
                return False

            incoming = list(fields)
            recent = set()
            if since_version is not None:
                recent = {
                    label for label, version in self._written.items() if version > since_version
                }

            if recent:
                logger.info(f"Keeping newer values over bulk result: {sorted(recent)}")
                incoming = self._keep_recent(incoming, recent)

            self._fields = incoming
            self._version += 1
            self._written = {label: self._version for label in recent}
            return True

    async def set_value(self, label: str, value: str, confidence: float = 1.0) -> bool:
        """Record a manual correction by the user."""
        return await self.merge(ExtractedField(label=label, value=value, confidence=confidence))

    def _keep_recent(
        self,
        incoming: list[ExtractedField],
        recent: set[str],
    ) -> list[ExtractedField]:
        current = {f.label: f for f in self._fields if f.label in recent}
        result = []
        for field in incoming:
            if field.label not in recent:
                result.append(field)
            elif field.label in current:
                result.append(current.pop(field.label))
        result.extend(current.values())
        return result

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self):
        return iter(self.snapshot())
