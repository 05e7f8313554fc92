"""Unit tests for the OpenAI vision extractor and the Pillow cropper."""

import asyncio
import base64
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError
from PIL import Image

from conftest import make_png
from docfill.interfaces.extractor import ExtractionError
from docfill.strategies.extractors import OpenAIVisionExtractor
from docfill.strategies.imaging import PillowImageCropper
from docfill.strategies.template_engine.models import ExtractedField, Rect


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


# =============================================================================
# OpenAI Vision Extractor Tests
# =============================================================================


class TestOpenAIVisionExtractor:
    """Test suite for OpenAIVisionExtractor."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=completion('{"fields": [], "rawText": "", "summary": ""}')
        )
        return client

    @pytest.fixture
    def extractor(self, client):
        return OpenAIVisionExtractor(api_key="sk-test", model="vision-model", client=client)

    # =========================================================================
    # Request Tests
    # =========================================================================

    def test_sends_image_as_data_url(self, extractor, client):
        """Test that the image is sent as a base64 data URL."""
        asyncio.run(extractor.extract(b"\x89PNG", "image/png"))

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "vision-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        content = kwargs["messages"][0]["content"]
        image_url = content[1]["image_url"]["url"]
        assert image_url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    def test_crop_mode_prompt_for_single_strict_target(self):
        """Test the crop-mode prompt for a single strict target."""
        prompt = OpenAIVisionExtractor.build_prompt(["total"], strict_mode=True)
        assert "SINGLE FIELD CROP MODE" in prompt
        assert '"total"' in prompt

    def test_strict_prompt_lists_targets(self):
        """Test that the strict prompt lists every target."""
        prompt = OpenAIVisionExtractor.build_prompt(["total", "date"], strict_mode=True)
        assert "STRICT EXTRACTION MODE" in prompt
        assert '- "total"\n- "date"' in prompt

    def test_plain_prompt_without_targets(self):
        """Test the prompt when no targets are given."""
        prompt = OpenAIVisionExtractor.build_prompt([], strict_mode=False)
        assert "STRICT" not in prompt
        assert "CROP MODE" not in prompt

    # =========================================================================
    # Response Parsing Tests
    # =========================================================================

    def test_parses_fenced_json(self):
        """Test parsing JSON wrapped in a Markdown fence."""
        content = '```json\n{"fields": [{"label": "total", "value": 450, "confidence": 0.9}], "rawText": "Total 450", "summary": "s"}\n```'
        result = OpenAIVisionExtractor.parse_response(content)
        assert result.fields == [ExtractedField(label="total", value="450", confidence=0.9)]
        assert result.raw_text == "Total 450"

    def test_recovers_json_from_prose(self):
        """Test recovering a JSON object surrounded by prose."""
        content = 'Here you go: {"fields": [{"label": "a", "value": "b"}]} hope it helps'
        result = OpenAIVisionExtractor.parse_response(content)
        assert result.fields == [ExtractedField(label="a", value="b", confidence=0.0)]

    @pytest.mark.parametrize("content", ["no json at all", "{broken", "[1, 2]"])
    def test_rejects_unparseable(self, content):
        """Test that unusable answers raise ExtractionError."""
        with pytest.raises(ExtractionError):
            OpenAIVisionExtractor.parse_response(content)

    def test_out_of_range_confidence_is_clamped(self):
        """Test that confidences above 1 are clamped."""
        result = OpenAIVisionExtractor.parse_response(
            '{"fields": [{"label": "a", "value": "b", "confidence": 95}]}'
        )
        assert result.fields[0].confidence == 1.0

    # =========================================================================
    # Strict Mode Tests
    # =========================================================================

    def test_strict_mode_filters_renames_fills_and_orders(self, extractor, client):
        """Test strict-mode post-processing of returned fields."""
        client.chat.completions.create.return_value = completion(
            '{"fields": ['
            '{"label": "{{DATE}}", "value": "18-feb", "confidence": 0.8},'
            '{"label": "invented_field", "value": "x", "confidence": 0.9},'
            '{"label": "Total", "value": "$5", "confidence": 0.7}'
            "]}"
        )

        result = asyncio.run(
            extractor.extract(b"img", "image/jpeg", ["total", "date", "client"], strict_mode=True)
        )

        assert result.fields == [
            ExtractedField(label="total", value="$5", confidence=0.7),
            ExtractedField(label="date", value="18-feb", confidence=0.8),
            ExtractedField(label="client", value="", confidence=0.0),
        ]

    def test_non_strict_keeps_everything(self, extractor, client):
        """Test that non-strict calls keep every returned field."""
        client.chat.completions.create.return_value = completion(
            '{"fields": [{"label": "anything", "value": "x", "confidence": 0.5}]}'
        )
        result = asyncio.run(extractor.extract(b"img", "image/jpeg", ["total"]))
        assert [f.label for f in result.fields] == ["anything"]

    # =========================================================================
    # Failure Tests
    # =========================================================================

    def test_api_error_becomes_extraction_error(self, extractor, client):
        """Test that API errors are wrapped in ExtractionError."""
        client.chat.completions.create.side_effect = OpenAIError("invalid api key")
        with pytest.raises(ExtractionError, match="invalid api key"):
            asyncio.run(extractor.extract(b"img", "image/jpeg"))

    def test_empty_content(self, extractor, client):
        """Test that an empty answer raises ExtractionError."""
        client.chat.completions.create.return_value = completion(None)
        with pytest.raises(ExtractionError, match="Empty response"):
            asyncio.run(extractor.extract(b"img", "image/jpeg"))


# =============================================================================
# Pillow Cropper Tests
# =============================================================================


class TestPillowImageCropper:
    """Test suite for PillowImageCropper."""

    @pytest.fixture
    def cropper(self):
        return PillowImageCropper(jpeg_quality=80)

    def test_decode_and_dimensions(self, cropper):
        """Test decoding and image dimensions."""
        image = cropper.decode(make_png(320, 240))
        assert cropper.dimensions(image) == (320, 240)
        assert cropper.mime_type == "image/jpeg"

    def test_decode_rejects_garbage(self, cropper):
        """Test that non-image bytes raise ValueError."""
        with pytest.raises(ValueError, match="Unreadable"):
            cropper.decode(b"definitely not an image")

    def test_crop_rounds_outward(self, cropper):
        """Test that fractional boxes round outward."""
        image = cropper.decode(make_png(100, 100))

        data = asyncio.run(cropper.crop(image, Rect(x=10.5, y=20.2, w=30.0, h=10.1)))

        crop = Image.open(io.BytesIO(data))
        assert crop.format == "JPEG"
        assert crop.size == (31, 11)

    def test_crop_converts_alpha_images(self, cropper):
        """Test that RGBA crops are converted for JPEG."""
        buffer = io.BytesIO()
        Image.new("RGBA", (50, 50), (255, 0, 0, 128)).save(buffer, format="PNG")
        image = cropper.decode(buffer.getvalue())

        data = asyncio.run(cropper.crop(image, Rect(x=0, y=0, w=20, h=20)))

        assert Image.open(io.BytesIO(data)).mode == "RGB"

    def test_crop_pixels_come_from_region(self, cropper):
        """Test that the crop holds pixels from the requested region."""
        source = Image.new("RGB", (100, 100), "white")
        source.paste((0, 0, 0), (50, 50, 100, 100))
        buffer = io.BytesIO()
        source.save(buffer, format="PNG")
        image = cropper.decode(buffer.getvalue())

        data = asyncio.run(cropper.crop(image, Rect(x=60, y=60, w=20, h=20)))

        r, g, b = Image.open(io.BytesIO(data)).getpixel((10, 10))
        assert max(r, g, b) < 30

    def test_crop_outside_image(self, cropper):
        """Test that a box outside the image raises ValueError."""
        image = cropper.decode(make_png(100, 100))
        with pytest.raises(ValueError):
            asyncio.run(cropper.crop(image, Rect(x=200, y=200, w=10, h=10)))
