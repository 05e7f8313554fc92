"""Image cropping interfaces."""

from abc import ABC, abstractmethod
from typing import Any

from docfill.strategies.template_engine.models import Rect


class BaseImageCropper(ABC):
    """Abstract base class for image crop primitives.

    A source image is decoded once with :meth:`decode` and then shared,
    read-only, by every concurrent :meth:`crop`.
    """

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        """Decode encoded image bytes into the cropper's image type.

        Raises:
            ValueError: If the bytes are not a readable image.
        """

    @abstractmethod
    def dimensions(self, image: Any) -> tuple[int, int]:
        """Return (width, height) of a decoded image in pixels."""

    @abstractmethod
    async def crop(self, image: Any, box: Rect) -> bytes:
        """Crop a pixel-space rectangle into a standalone encoded image."""

    @property
    @abstractmethod
    def mime_type(self) -> str:
        """MIME type of the bytes returned by :meth:`crop`."""
