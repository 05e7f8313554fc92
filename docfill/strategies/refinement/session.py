"""Document review session.

Ties one document's source image, extraction result, refinement engine
and scheduler together. Creating a new session for the next document
and closing the old one is what invalidates late refinement results.
"""

import logging
from collections.abc import Iterable

from docfill.interfaces.timer import BaseTimer
from docfill.strategies.refinement.engine import RefinementOutcome, SmartRefinementEngine
from docfill.strategies.refinement.geometry import finalize_hint
from docfill.strategies.refinement.scheduler import RefinementScheduler, ReportFn
from docfill.strategies.refinement.store import ExtractionResultStore
from docfill.strategies.template_engine.models import ExtractedField, ExtractionResponse, Hint
from docfill.strategies.template_engine.substituter import (
    UNFILLED_MARKER,
    RenderedDocument,
    render_document,
    substitute,
)

logger = logging.getLogger(__name__)


class ReviewSession:
    """Review state for a single uploaded document.

    Example:
        ```python
        session = factory.create_session(image_bytes)
        await session.run_extraction("image/png", parse_variables(markup))
        session.on_hints_changed(hints)   # on every annotation edit
        html = session.substitute(markup)
        ```
    """

    def __init__(
        self,
        image: bytes,
        engine: SmartRefinementEngine,
        fields: Iterable[ExtractedField] | None = None,
        timer: BaseTimer | None = None,
        debounce_seconds: float = 1.5,
        unfilled_marker: str = UNFILLED_MARKER,
        manual_edit_confidence: float = 1.0,
        min_hint_points: int = 3,
        on_report: ReportFn | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            image: Encoded source image (full resolution).
            engine: Smart refinement engine.
            fields: Initial extraction result, if already known. Without
                one, hint changes wait for :meth:`run_extraction`.
            timer: Timer for the refinement debounce.
            debounce_seconds: Quiet period before refinement runs.
            unfilled_marker: Text for unmatched placeholders.
            manual_edit_confidence: Confidence for user-typed values.
            min_hint_points: Fewest points a freehand hint needs to be kept.
            on_report: Receives refinement outcomes after each batch.

        Raises:
            ValueError: If the image cannot be decoded.
        """
        self._image_bytes = image
        self._engine = engine
        self._image = engine.cropper.decode(image)
        self._unfilled_marker = unfilled_marker
        self._manual_edit_confidence = manual_edit_confidence
        self._min_hint_points = min_hint_points

        self.store = ExtractionResultStore(fields)
        self._has_result = fields is not None
        self._waiting_hints: list[Hint] | None = None
        self.scheduler = RefinementScheduler(
            self._refine_hints,
            timer=timer,
            debounce_seconds=debounce_seconds,
            on_report=on_report,
        )

    @property
    def fields(self) -> list[ExtractedField]:
        return self.store.snapshot()

    @property
    def closed(self) -> bool:
        return self.store.closed

    @property
    def has_result(self) -> bool:
        """True once an extraction result is loaded."""
        return self._has_result

    async def run_extraction(
        self,
        mime_type: str,
        target_variables: list[str] | None = None,
        strict_mode: bool | None = None,
    ) -> ExtractionResponse:
        """Bulk-extract fields from the whole document into the store.

        Fields refined or edited while the call is in flight keep their
        newer values. Hint changes held back until the first result are
        handed to the scheduler once it is loaded.

        Args:
            mime_type: MIME type of the source image bytes.
            target_variables: Template variables to extract, if a template
                is selected.
            strict_mode: Defaults to True when target variables are given.

        Raises:
            ExtractionError: If the capability fails.
        """
        targets = target_variables or []
        strict = bool(targets) if strict_mode is None else strict_mode

        since_version = self.store.version
        response = await self._engine.extractor.extract(
            self._image_bytes,
            mime_type,
            target_variables=targets,
            strict_mode=strict,
        )
        if not await self.store.replace_all(response.fields, since_version=since_version):
            return response
        logger.info(f"Bulk extraction loaded {len(response.fields)} fields")

        self._has_result = True
        if self._waiting_hints is not None:
            hints, self._waiting_hints = self._waiting_hints, None
            self.scheduler.on_hints_changed(hints)
        return response

    def finalize_hint(self, hint: Hint) -> Hint | None:
        """Keep a just-drawn hint, or None if it was an accidental click."""
        return finalize_hint(hint, self._min_hint_points)

    async def refine(self, hint: Hint) -> RefinementOutcome:
        """Refine one hint immediately, bypassing the debounce."""
        return await self._engine.refine(hint, self._image, self.store)

    def on_hints_changed(self, hints: Iterable[Hint]) -> None:
        """Forward an annotation edit to the scheduler.

        Before the first extraction result exists the latest hint list is
        only remembered.
        """
        if self.closed:
            return
        if not self._has_result:
            self._waiting_hints = list(hints)
            logger.debug("No extraction result yet; holding hint changes")
            return
        self.scheduler.on_hints_changed(hints)

    async def set_value(self, label: str, value: str) -> bool:
        """Apply a manual edit from the user."""
        return await self.store.set_value(label, value, self._manual_edit_confidence)

    def substitute(self, markup: str) -> str:
        """Fill template markup from the current extraction result."""
        return substitute(markup, self.store.snapshot(), unfilled_marker=self._unfilled_marker)

    def render(self, markup: str) -> RenderedDocument:
        return render_document(
            markup, self.store.snapshot(), unfilled_marker=self._unfilled_marker
        )

    async def wait_idle(self) -> None:
        await self.scheduler.wait_idle()

    def close(self) -> None:
        """End the session; results still in flight are discarded on arrival."""
        self.scheduler.cancel()
        self.store.close()
        logger.debug("Review session closed")

    async def _refine_hints(self, hints: list[Hint]) -> list[RefinementOutcome]:
        return await self._engine.refine_all(hints, self._image, self.store)
