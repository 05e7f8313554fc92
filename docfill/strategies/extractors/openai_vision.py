"""OpenAI-compatible vision extractor.

Sends a document image to a vision-capable chat model and parses the
labeled fields it returns. Works with OpenAI, OpenRouter and any other
provider exposing the chat completions API.
"""

import base64
import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from docfill.interfaces.extractor import BaseFieldExtractor, ExtractionError
from docfill.strategies.template_engine.models import ExtractedField, ExtractionResponse
from docfill.strategies.template_engine.parser import clean_variable_name

logger = logging.getLogger(__name__)


# =============================================================================
# Prompts
# =============================================================================

EXTRACTION_PROMPT = """
You are a document OCR and data extraction engine. Read every piece of text in
the image: printed, typed, stamped and handwritten, in any language.

RULES:
1. Handwriting: read character by character; give your best reading with a lower confidence when unsure.
2. Dates, amounts and reference numbers: copy them exactly as written, including separators and currency symbols.
3. Names and addresses: keep accents and full spelling.

Return a JSON object with this exact structure:
{
  "fields": [{"label": "descriptive_snake_case_label", "value": "value as written", "confidence": 0.95}],
  "rawText": "all text in the document, preserving line breaks",
  "summary": "one or two sentences, in the document's language"
}
"""

CROP_MODE_PROMPT = """
SINGLE FIELD CROP MODE:
The image is a targeted crop for the field "{variable}".
1. If the crop shows "Label: Value", return only the value.
2. If it shows only a value, return it exactly.
3. If it shows a block of text, return all of it.
4. Ignore small noise and artifacts.
Return exactly one field with label "{variable}".
"""

STRICT_MODE_PROMPT = """
STRICT EXTRACTION MODE:
Extract values for exactly these {count} template variables, no more and no less:
{variables}
1. Each "label" MUST be one of the names above, spelled exactly the same.
2. Map document content to variables by meaning; the document and the variable names may be in different languages.
3. If a value truly cannot be found, return it with value "" and confidence 0.
"""


class OpenAIVisionExtractor(BaseFieldExtractor):
    """Field extractor using an OpenAI-compatible vision chat model.

    Attributes:
        model: The vision model name.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "openai/gpt-4o",
        base_url: str | None = "https://openrouter.ai/api/v1",
        timeout: float = 120.0,
        max_tokens: int = 8192,
        temperature: float = 0.1,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            api_key: Provider API key.
            model: Vision model name.
            base_url: API base URL (default: OpenRouter).
            timeout: Per-request timeout in seconds.
            max_tokens: Completion token cap.
            temperature: Sampling temperature.
            client: Pre-built client (tests, shared connection pools).
        """
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
        )
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

        logger.info(f"OpenAIVisionExtractor initialized: model={model}")

    async def extract(
        self,
        image: bytes,
        mime_type: str,
        target_variables: list[str] | None = None,
        strict_mode: bool = False,
    ) -> ExtractionResponse:
        """Extract labeled fields from an image.

        Args:
            image: Encoded image bytes.
            mime_type: MIME type of the image.
            target_variables: Template variables to look for.
            strict_mode: Keep only target variables, one field each, in order.

        Returns:
            Parsed extraction response.

        Raises:
            ExtractionError: On API failure or an unparseable answer.
        """
        targets = [v for v in (clean_variable_name(t) for t in target_variables or []) if v]
        prompt = self.build_prompt(targets, strict_mode)
        encoded = base64.b64encode(image).decode("ascii")

        logger.debug(
            f"Calling {self._model}: {len(image)} bytes, {len(targets)} targets, "
            f"strict={strict_mode}"
        )

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                            },
                        ],
                    }
                ],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error(f"Vision API error: {e}")
            raise ExtractionError(f"Vision API error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExtractionError("Empty response from vision model")

        result = self.parse_response(content)

        if strict_mode and targets:
            fields = self.enforce_targets(result.fields, targets)
            logger.info(
                f"Strict mode: {len(result.fields)} -> {len(fields)} fields "
                f"(template has {len(targets)})"
            )
            result = result.model_copy(update={"fields": fields})

        return result

    @staticmethod
    def build_prompt(targets: list[str], strict_mode: bool) -> str:
        """Assemble the prompt for a call.

        One target in strict mode means the image is a crop around a
        single value.
        """
        prompt = EXTRACTION_PROMPT
        if not targets:
            return prompt

        if strict_mode and len(targets) == 1:
            return prompt + CROP_MODE_PROMPT.format(variable=targets[0])

        variables = "\n".join(f'- "{v}"' for v in targets)
        return prompt + STRICT_MODE_PROMPT.format(count=len(targets), variables=variables)

    @staticmethod
    def parse_response(content: str) -> ExtractionResponse:
        """Parse the model's JSON answer, tolerating Markdown fences.

        Raises:
            ExtractionError: If no JSON object can be recovered.
        """
        clean = re.sub(r"```(?:json)?\n?", "", content).strip()

        data: Any
        try:
            data = json.loads(clean)
        except json.JSONDecodeError:
            match = re.search(r"\{[\s\S]*\}", clean)
            if not match:
                raise ExtractionError(
                    f"Model did not return valid JSON. Response: {clean[:200]}"
                )
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError as e:
                raise ExtractionError(
                    f"Model did not return valid JSON. Response: {clean[:200]}"
                ) from e

        if not isinstance(data, dict):
            raise ExtractionError(f"Expected a JSON object, got {type(data).__name__}")

        try:
            return ExtractionResponse.model_validate(data)
        except ValidationError as e:
            raise ExtractionError(f"Malformed extraction response: {e}") from e

    @staticmethod
    def enforce_targets(
        fields: list[ExtractedField],
        targets: list[str],
    ) -> list[ExtractedField]:
        """Restrict fields to the requested variables.

        Drops unrequested labels, renames kept fields to the exact variable
        spelling, adds an empty field for each missing variable and orders
        the result like ``targets``.
        """
        by_key = {t.lower(): t for t in targets}
        order = {t.lower(): i for i, t in enumerate(targets)}

        kept: dict[str, ExtractedField] = {}
        for field in fields:
            key = clean_variable_name(field.label).lower()
            if key in by_key and key not in kept:
                kept[key] = field.model_copy(update={"label": by_key[key]})

        for key, target in by_key.items():
            if key not in kept:
                kept[key] = ExtractedField(label=target, value="", confidence=0.0)

        return sorted(kept.values(), key=lambda f: order[f.label.lower()])

    @property
    def model(self) -> str:
        """Return the model name."""
        return self._model
