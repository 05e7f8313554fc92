"""Field extraction interfaces.

Defines the abstract base class for vision extraction capabilities:
given an image, return labeled field values.
"""

from abc import ABC, abstractmethod

from docfill.strategies.template_engine.models import ExtractionResponse


class BaseFieldExtractor(ABC):
    """Abstract base class for field extraction strategies.

    Implementations wrap an external, possibly slow and possibly failing
    AI vision service. Timeouts and retries are their concern.

    Example:
        ```python
        class MyExtractor(BaseFieldExtractor):
            async def extract(self, image, mime_type, target_variables=None, strict_mode=False):
                # Call the vision API
                ...
        ```
    """

    @abstractmethod
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
            mime_type: MIME type of ``image`` (e.g. "image/jpeg").
            target_variables: Variable names to extract. Empty means
                discover any fields present.
            strict_mode: Return only ``target_variables``, one field each.

        Returns:
            The extraction response.

        Raises:
            ExtractionError: If the capability fails or answers unusably.
        """


class ExtractionError(Exception):
    """Exception raised when field extraction fails."""

    pass
