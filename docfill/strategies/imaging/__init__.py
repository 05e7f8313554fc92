"""Concrete image cropper implementations."""

from docfill.strategies.imaging.pillow import PillowImageCropper

__all__ = [
    "PillowImageCropper",
]
