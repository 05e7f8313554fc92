"""Engine settings.

Every tuning knob of extraction, refinement and substitution lives here,
read from the environment (or a .env file) once per process.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Engine settings.

    Field names double as environment variable names (case-insensitive),
    e.g. ``REFINEMENT_DEBOUNCE_SECONDS=0.5``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Vision extraction (OpenAI-compatible API)
    openai_api_key: str = Field(
        default="",
        description="API key for the vision extraction provider.",
    )
    openai_base_url: str | None = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible API (default: OpenRouter).",
    )
    vision_model: str = Field(
        default="openai/gpt-4o",
        description="Vision-capable model used for field extraction.",
    )
    extraction_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for a single extraction call.",
    )
    extraction_max_tokens: int = Field(
        default=8192,
        gt=0,
        description="Completion token cap for extraction calls.",
    )
    extraction_temperature: float = Field(
        default=0.1,
        ge=0.0,
        description="Sampling temperature for extraction calls.",
    )

    # Strategy Selection
    extractor_type: str = Field(
        default="openai",
        description="Extractor strategy to use: 'openai'.",
    )
    cropper_type: str = Field(
        default="pillow",
        description="Image cropper strategy to use: 'pillow'.",
    )

    # Smart refinement tuning
    refinement_debounce_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Quiet period after the last hint edit before refinement runs.",
    )
    crop_padding_ratio: float = Field(
        default=0.1,
        ge=0.0,
        description="Padding added on each side of a hint, relative to its size.",
    )
    refinement_confidence: float = Field(
        default=0.99,
        ge=0.0,
        le=1.0,
        description="Confidence assigned to values produced by smart refinement.",
    )
    manual_edit_confidence: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Confidence assigned to values typed in by the user.",
    )
    min_hint_points: int = Field(
        default=3,
        ge=1,
        description="Minimum points for a freehand hint to be kept.",
    )
    crop_jpeg_quality: int = Field(
        default=90,
        ge=1,
        le=95,
        description="JPEG quality used when encoding crops.",
    )
    empty_value_sentinels: list[str] = Field(
        default_factory=lambda: ["(Vacio)", "(Vacío)", "(empty)"],
        description="Values the extractor uses to say nothing was found.",
    )

    # Substitution
    unfilled_marker: str = Field(
        default="___",
        description="Text rendered in place of placeholders with no matching field.",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )
    log_json: bool = Field(
        default=True,
        description="Render structlog events as JSON lines; key=value text when False.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for info.log / error.log. Console only when unset.",
    )

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    def configure_logging(self) -> None:
        """Route structlog through stdlib logging at ``log_level``."""
        from docfill.core.logging_config import configure_structlog

        configure_structlog(self.log_level, json_logs=self.log_json)
        logger.debug(f"Logging configured: level={self.log_level}, json={self.log_json}")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, created (and logging configured) on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.configure_logging()
    return _settings
