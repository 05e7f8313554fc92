"""Concrete field extractor implementations."""

from docfill.strategies.extractors.openai_vision import OpenAIVisionExtractor

__all__ = [
    "OpenAIVisionExtractor",
]
