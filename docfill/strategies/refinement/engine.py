"""Smart refinement engine.

Improves a single field's value from a user-drawn region: crop the
region (plus some context) out of the source image and ask the
extraction capability for exactly that one variable.
"""

import asyncio
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from docfill.interfaces.cropper import BaseImageCropper
from docfill.interfaces.extractor import BaseFieldExtractor
from docfill.strategies.refinement.geometry import padded_crop_box
from docfill.strategies.refinement.store import ExtractionResultStore
from docfill.strategies.template_engine.models import (
    ExtractedField,
    ExtractionResponse,
    Hint,
    Rect,
)
from docfill.strategies.template_engine.normalizer import normalize_label

logger = logging.getLogger(__name__)

DEFAULT_EMPTY_SENTINELS = ("(Vacio)", "(Vacío)", "(empty)")


class RefinementStatus(str, enum.Enum):
    """What happened to one hint."""

    UPDATED = "updated"
    EMPTY = "empty"
    SKIPPED = "skipped"
    FAILED = "failed"
    STALE = "stale"


@dataclass(frozen=True)
class RefinementOutcome:
    """Result of refining one hint.

    Attributes:
        hint_id: The hint that was processed.
        label: Variable the hint targets.
        status: Outcome category.
        value: Value merged into the store (UPDATED only).
        error: Failure description (FAILED only).
    """

    hint_id: str
    label: str | None
    status: RefinementStatus
    value: str | None = None
    error: str | None = None


class SmartRefinementEngine:
    """Crops hint regions and re-extracts one variable per hint.

    Failures are isolated per hint: they are logged and reported in the
    outcome, never raised, and never retried.
    """

    def __init__(
        self,
        extractor: BaseFieldExtractor,
        cropper: BaseImageCropper,
        padding_ratio: float = 0.1,
        confidence: float = 0.99,
        empty_sentinels: Iterable[str] = DEFAULT_EMPTY_SENTINELS,
    ) -> None:
        """Initialize the engine.

        Args:
            extractor: Extraction capability called on each crop.
            cropper: Image crop primitive.
            padding_ratio: Context added around each hint, per side.
            confidence: Confidence given to refined values.
            empty_sentinels: Extractor answers that mean "nothing found".
        """
        self._extractor = extractor
        self._cropper = cropper
        self._padding_ratio = padding_ratio
        self._confidence = confidence
        self._empty_sentinels = {s.strip().casefold() for s in empty_sentinels}

        logger.info(
            f"SmartRefinementEngine initialized: padding_ratio={padding_ratio}, "
            f"confidence={confidence}"
        )

    @property
    def extractor(self) -> BaseFieldExtractor:
        return self._extractor

    @property
    def cropper(self) -> BaseImageCropper:
        return self._cropper

    def is_usable_value(self, value: str | None) -> bool:
        """A value is usable unless blank or an "empty" sentinel."""
        if value is None:
            return False
        cleaned = value.strip()
        return bool(cleaned) and cleaned.casefold() not in self._empty_sentinels

    def crop_box_for(self, hint: Hint, image_size: tuple[int, int]) -> Rect | None:
        """Padded, clamped crop rectangle for a hint, or None if degenerate."""
        bbox = hint.bounding_box()
        if bbox is None:
            return None
        return padded_crop_box(bbox, image_size, self._padding_ratio)

    async def refine(
        self,
        hint: Hint,
        image: Any,
        store: ExtractionResultStore,
    ) -> RefinementOutcome:
        """Refine the field targeted by one hint and merge it into the store.

        Args:
            hint: The user-drawn region; its label names the variable.
            image: Decoded source image (shared, read-only).
            store: Extraction result to update in place.

        Returns:
            The outcome for this hint.
        """
        label = hint.label.strip() if hint.label else None
        if not label:
            return RefinementOutcome(hint.id, None, RefinementStatus.SKIPPED)

        box = self.crop_box_for(hint, self._cropper.dimensions(image))
        if box is None:
            logger.debug(f"Skipping degenerate hint {hint.id} for '{label}'")
            return RefinementOutcome(hint.id, label, RefinementStatus.SKIPPED)

        try:
            crop = await self._cropper.crop(image, box)
            logger.info(f"Scanning crop for variable: {label}")
            response = await self._extractor.extract(
                crop,
                self._cropper.mime_type,
                target_variables=[label],
                strict_mode=True,
            )
        except Exception as e:
            logger.error(f"Smart refinement failed for '{label}' (hint {hint.id}): {e}")
            return RefinementOutcome(hint.id, label, RefinementStatus.FAILED, error=str(e))

        value = self._value_for(label, response)
        if not self.is_usable_value(value):
            logger.info(f"No value found in crop for '{label}', keeping current value")
            return RefinementOutcome(hint.id, label, RefinementStatus.EMPTY)

        merged = await store.merge(
            ExtractedField(label=label, value=value, confidence=self._confidence)
        )
        if not merged:
            return RefinementOutcome(hint.id, label, RefinementStatus.STALE, value=value)

        logger.info(f"Smart refine updated '{label}'")
        return RefinementOutcome(hint.id, label, RefinementStatus.UPDATED, value=value)

    async def refine_all(
        self,
        hints: Iterable[Hint],
        image: Any,
        store: ExtractionResultStore,
    ) -> list[RefinementOutcome]:
        """Refine several hints concurrently and wait for all of them."""
        hints = list(hints)
        if not hints:
            return []

        outcomes = await asyncio.gather(*(self.refine(h, image, store) for h in hints))

        updated = sum(1 for o in outcomes if o.status is RefinementStatus.UPDATED)
        failed = sum(1 for o in outcomes if o.status is RefinementStatus.FAILED)
        logger.info(
            f"Smart refine finished: {len(outcomes)} hints, "
            f"{updated} updated, {failed} failed"
        )
        return list(outcomes)

    @staticmethod
    def _value_for(label: str, response: ExtractionResponse) -> str | None:
        for field in response.fields:
            if field.label == label:
                return field.value
        target = normalize_label(label)
        for field in response.fields:
            if normalize_label(field.label) == target:
                return field.value
        return None
