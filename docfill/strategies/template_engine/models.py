"""Template engine domain models.

Pydantic models shared by the matcher, the substituter, the extraction
capability and smart refinement.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractedField(BaseModel):
    """A labeled value returned by the extraction capability."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Free-text label chosen by the extractor")
    value: str = Field(default="", description="Extracted value as written")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Trust score 0-1")

    @field_validator("label", "value", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> str:
        """Models sometimes answer with numbers or null."""
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        """Clamp out-of-range scores instead of rejecting the whole response."""
        if v is None:
            return 0.0
        return min(1.0, max(0.0, float(v)))


class ExtractionResponse(BaseModel):
    """Result of one call to the extraction capability."""

    model_config = ConfigDict(populate_by_name=True)

    fields: list[ExtractedField] = Field(default_factory=list)
    summary: str = Field(default="")
    raw_text: str = Field(default="", alias="rawText")

    @field_validator("summary", "raw_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else v


class Point(BaseModel):
    """A point in image-pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Rect(BaseModel):
    """An axis-aligned rectangle in image-pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    w: float
    h: float

    @property
    def area(self) -> float:
        return max(0.0, self.w) * max(0.0, self.h)


class Hint(BaseModel):
    """A user-drawn region on the source image, optionally tied to one variable.

    Geometry is either a freehand/highlight stroke (``points``) or a stored
    box (``rect``). Points take precedence when both are present.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str | None = None
    points: tuple[Point, ...] = ()
    rect: Rect | None = None
    color: str | None = None

    @property
    def is_labeled(self) -> bool:
        return bool(self.label and self.label.strip())

    def bounding_box(self) -> Rect | None:
        """Axis-aligned bounding box of the geometry, or None without geometry."""
        if self.points:
            xs = [p.x for p in self.points]
            ys = [p.y for p in self.points]
            min_x, min_y = min(xs), min(ys)
            return Rect(x=min_x, y=min_y, w=max(xs) - min_x, h=max(ys) - min_y)
        return self.rect

    def signature(self) -> tuple:
        """Identity plus geometry; equal signatures mean nothing to re-scan."""
        points = tuple((p.x, p.y) for p in self.points)
        rect = (self.rect.x, self.rect.y, self.rect.w, self.rect.h) if self.rect else None
        return (self.id, self.label, points, rect)
