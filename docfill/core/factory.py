"""Builds extractors, croppers, refinement engines and review sessions.

Which implementation backs each capability is chosen by ``Settings``
(``extractor_type``, ``cropper_type``).
"""

import logging
from collections.abc import Iterable

from docfill.core.config import Settings, get_settings
from docfill.interfaces.cropper import BaseImageCropper
from docfill.interfaces.extractor import BaseFieldExtractor
from docfill.interfaces.timer import BaseTimer
from docfill.strategies.extractors import OpenAIVisionExtractor
from docfill.strategies.imaging import PillowImageCropper
from docfill.strategies.refinement import ReviewSession, SmartRefinementEngine
from docfill.strategies.refinement.scheduler import ReportFn
from docfill.strategies.template_engine.models import ExtractedField

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating engine components based on configuration.

    Example:
        ```python
        settings = get_settings()
        factory = ComponentFactory(settings)

        session = factory.create_session(image_bytes)
        await session.run_extraction("image/png", variables)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Engine settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._extractor_cache: BaseFieldExtractor | None = None
        self._cropper_cache: BaseImageCropper | None = None
        self._engine_cache: SmartRefinementEngine | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_extractor(self, extractor_type: str | None = None) -> BaseFieldExtractor:
        """Get an extractor instance based on the specified type.

        Args:
            extractor_type: The extractor type to instantiate. If None, uses settings.

        Returns:
            A BaseFieldExtractor implementation instance.

        Raises:
            ValueError: If the extractor type is unknown or misconfigured.
        """
        if self._extractor_cache is None or extractor_type is not None:
            extractor_type = extractor_type or self._settings.extractor_type

            logger.info(f"Instantiating extractor: {extractor_type}")

            match extractor_type:
                case "openai":
                    if not self._settings.openai_api_key:
                        raise ValueError("OPENAI_API_KEY is required for the vision extractor")
                    self._extractor_cache = OpenAIVisionExtractor(
                        api_key=self._settings.openai_api_key,
                        model=self._settings.vision_model,
                        base_url=self._settings.openai_base_url,
                        timeout=self._settings.extraction_timeout_seconds,
                        max_tokens=self._settings.extraction_max_tokens,
                        temperature=self._settings.extraction_temperature,
                    )
                case _:
                    raise ValueError(
                        f"Unknown extractor type: {extractor_type}. "
                        f"Valid options: 'openai'"
                    )

        return self._extractor_cache

    def get_cropper(self, cropper_type: str | None = None) -> BaseImageCropper:
        """Get an image cropper instance based on the specified type.

        Raises:
            ValueError: If the cropper type is unknown.
        """
        if self._cropper_cache is None or cropper_type is not None:
            cropper_type = cropper_type or self._settings.cropper_type

            logger.info(f"Instantiating cropper: {cropper_type}")

            match cropper_type:
                case "pillow":
                    self._cropper_cache = PillowImageCropper(
                        jpeg_quality=self._settings.crop_jpeg_quality,
                    )
                case _:
                    raise ValueError(
                        f"Unknown cropper type: {cropper_type}. "
                        f"Valid options: 'pillow'"
                    )

        return self._cropper_cache

    def get_refinement_engine(
        self,
        extractor: BaseFieldExtractor | None = None,
        cropper: BaseImageCropper | None = None,
    ) -> SmartRefinementEngine:
        """Get a smart refinement engine.

        Passing an extractor or cropper builds a fresh, uncached engine
        around them.
        """
        if extractor is not None or cropper is not None:
            return self._build_engine(
                extractor or self.get_extractor(),
                cropper or self.get_cropper(),
            )

        if self._engine_cache is None:
            logger.info("Instantiating smart refinement engine")
            self._engine_cache = self._build_engine(self.get_extractor(), self.get_cropper())

        return self._engine_cache

    def create_session(
        self,
        image: bytes,
        fields: Iterable[ExtractedField] | None = None,
        engine: SmartRefinementEngine | None = None,
        timer: BaseTimer | None = None,
        on_report: ReportFn | None = None,
    ) -> ReviewSession:
        """Start a review session for one document.

        Args:
            image: Encoded source image.
            fields: Initial extraction result, if any.
            engine: Engine override (default: the cached engine).
            timer: Timer override for the refinement debounce.
            on_report: Receives refinement outcomes.
        """
        return ReviewSession(
            image,
            engine or self.get_refinement_engine(),
            fields=fields,
            timer=timer,
            debounce_seconds=self._settings.refinement_debounce_seconds,
            unfilled_marker=self._settings.unfilled_marker,
            manual_edit_confidence=self._settings.manual_edit_confidence,
            min_hint_points=self._settings.min_hint_points,
            on_report=on_report,
        )

    def clear_cache(self) -> None:
        """Drop cached components so the next access rebuilds them."""
        self._extractor_cache = None
        self._cropper_cache = None
        self._engine_cache = None
        logger.debug("Component factory cache cleared")

    def _build_engine(
        self,
        extractor: BaseFieldExtractor,
        cropper: BaseImageCropper,
    ) -> SmartRefinementEngine:
        return SmartRefinementEngine(
            extractor,
            cropper,
            padding_ratio=self._settings.crop_padding_ratio,
            confidence=self._settings.refinement_confidence,
            empty_sentinels=self._settings.empty_value_sentinels,
        )


_factory: ComponentFactory | None = None


def get_factory() -> ComponentFactory:
    """Process-wide factory built from ``get_settings()``."""
    global _factory
    if _factory is None:
        _factory = ComponentFactory()
    return _factory
