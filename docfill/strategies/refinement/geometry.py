"""Hint geometry in image-pixel space."""

from docfill.strategies.template_engine.models import Hint, Rect


def padded_crop_box(
    bbox: Rect,
    image_size: tuple[int, int],
    padding_ratio: float = 0.1,
) -> Rect | None:
    """Grow a bounding box by ``padding_ratio`` on each side, clamped to the image.

    Args:
        bbox: Hint bounding box in pixels.
        image_size: (width, height) of the source image.
        padding_ratio: Fraction of the box size added on each side.

    Returns:
        The crop rectangle, or None when it has no area.
    """
    width, height = image_size
    pad_x = bbox.w * padding_ratio
    pad_y = bbox.h * padding_ratio

    start_x = max(0.0, bbox.x - pad_x)
    start_y = max(0.0, bbox.y - pad_y)
    end_x = min(float(width), bbox.x + bbox.w + pad_x)
    end_y = min(float(height), bbox.y + bbox.h + pad_y)

    crop_w = end_x - start_x
    crop_h = end_y - start_y
    if crop_w <= 0 or crop_h <= 0:
        return None
    return Rect(x=start_x, y=start_y, w=crop_w, h=crop_h)


def is_degenerate(hint: Hint) -> bool:
    """True when the hint has no geometry or its bounding box has no area."""
    bbox = hint.bounding_box()
    return bbox is None or bbox.area <= 0


def finalize_hint(hint: Hint, min_points: int = 3) -> Hint | None:
    """Keep a just-drawn hint, or discard it as an accidental click.

    Freehand hints need at least ``min_points`` points; any hint needs a
    bounding box with positive area.
    """
    if hint.points and len(hint.points) < min_points:
        return None
    if is_degenerate(hint):
        return None
    return hint
