"""Abstract base classes for pluggable engine capabilities."""

from docfill.interfaces.cropper import BaseImageCropper
from docfill.interfaces.extractor import BaseFieldExtractor, ExtractionError
from docfill.interfaces.timer import BaseTimer, TimerHandle

__all__ = [
    "BaseFieldExtractor",
    "BaseImageCropper",
    "BaseTimer",
    "ExtractionError",
    "TimerHandle",
]
