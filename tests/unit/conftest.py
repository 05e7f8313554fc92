"""Shared fixtures for unit tests."""

import io
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from docfill.interfaces.extractor import BaseFieldExtractor
from docfill.interfaces.timer import BaseTimer, TimerHandle
from docfill.strategies.imaging import PillowImageCropper
from docfill.strategies.refinement import SmartRefinementEngine
from docfill.strategies.template_engine.models import (
    ExtractedField,
    ExtractionResponse,
    Hint,
    Point,
    Rect,
)


class ManualTimerHandle(TimerHandle):
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer(BaseTimer):
    """Timer that only fires when the test says so."""

    def __init__(self) -> None:
        self.handles: list[ManualTimerHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = ManualTimerHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def armed(self) -> list[ManualTimerHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self) -> int:
        """Run every armed callback; returns how many ran."""
        ready = self.armed
        for handle in ready:
            handle.fired = True
            handle.callback()
        return len(ready)


def make_png(width: int = 200, height: int = 100, color: str = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def stroke_hint(hint_id: str, label: str | None, x0: float, y0: float, x1: float, y1: float) -> Hint:
    """Freehand hint whose bounding box is (x0, y0)-(x1, y1)."""
    return Hint(
        id=hint_id,
        label=label,
        points=(Point(x=x0, y=y0), Point(x=(x0 + x1) / 2, y=y1), Point(x=x1, y=y0)),
    )


def box_hint(hint_id: str, label: str | None, x: float, y: float, w: float, h: float) -> Hint:
    return Hint(id=hint_id, label=label, rect=Rect(x=x, y=y, w=w, h=h))


def responding(mapping: dict[str, object]) -> Callable:
    """Side effect for a mocked ``extract``: value (or exception) per target label."""

    async def _extract(image, mime_type, target_variables=None, strict_mode=False):
        label = target_variables[0]
        outcome = mapping[label]
        if isinstance(outcome, Exception):
            raise outcome
        return ExtractionResponse(
            fields=[ExtractedField(label=label, value=outcome, confidence=0.7)]
        )

    return _extract


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def cropper():
    return PillowImageCropper(jpeg_quality=90)


@pytest.fixture
def extractor():
    mock = AsyncMock(spec=BaseFieldExtractor)
    mock.extract.return_value = ExtractionResponse(fields=[])
    return mock


@pytest.fixture
def engine(extractor, cropper):
    return SmartRefinementEngine(extractor, cropper, padding_ratio=0.1, confidence=0.99)
