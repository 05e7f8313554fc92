"""Pillow-based image cropper.

Cuts padded hint regions out of the source image and encodes them as
standalone JPEGs for the extraction capability.
"""

import asyncio
import io
import logging
import math

from PIL import Image, UnidentifiedImageError

from docfill.interfaces.cropper import BaseImageCropper
from docfill.strategies.template_engine.models import Rect

logger = logging.getLogger(__name__)


class PillowImageCropper(BaseImageCropper):
    """Image cropper implementation using Pillow.

    Crops run in a worker thread so the event loop keeps serving other
    refinements while one is encoding.
    """

    def __init__(self, jpeg_quality: int = 90) -> None:
        """Initialize the cropper.

        Args:
            jpeg_quality: JPEG quality for encoded crops.
        """
        self._jpeg_quality = jpeg_quality

    def decode(self, data: bytes) -> Image.Image:
        """Decode image bytes and load pixel data eagerly.

        Loading up front keeps concurrent crops from racing on Pillow's
        lazy loader.
        """
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Unreadable source image: {e}") from e

        logger.debug(f"Decoded source image: {image.size[0]}x{image.size[1]} {image.mode}")
        return image

    def dimensions(self, image: Image.Image) -> tuple[int, int]:
        return image.size

    async def crop(self, image: Image.Image, box: Rect) -> bytes:
        """Crop ``box`` (pixel space, fractional allowed) to JPEG bytes."""
        return await asyncio.to_thread(self._crop_sync, image, box)

    def _crop_sync(self, image: Image.Image, box: Rect) -> bytes:
        width, height = image.size
        left = max(0, math.floor(box.x))
        top = max(0, math.floor(box.y))
        right = min(width, math.ceil(box.x + box.w))
        bottom = min(height, math.ceil(box.y + box.h))

        if right <= left or bottom <= top:
            raise ValueError(f"Crop box outside image bounds: {box}")

        region = image.crop((left, top, right, bottom))
        if region.mode not in ("RGB", "L"):
            region = region.convert("RGB")

        buffer = io.BytesIO()
        region.save(buffer, format="JPEG", quality=self._jpeg_quality)
        logger.debug(f"Cropped region {left},{top} {right - left}x{bottom - top}")
        return buffer.getvalue()

    @property
    def mime_type(self) -> str:
        return "image/jpeg"
