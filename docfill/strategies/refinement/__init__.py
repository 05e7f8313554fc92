"""Smart refinement: hint-driven, cropped re-extraction of single fields."""

from docfill.strategies.refinement.engine import (
    RefinementOutcome,
    RefinementStatus,
    SmartRefinementEngine,
)
from docfill.strategies.refinement.geometry import finalize_hint, is_degenerate, padded_crop_box
from docfill.strategies.refinement.scheduler import (
    AsyncioTimer,
    RefinementScheduler,
    SchedulerState,
)
from docfill.strategies.refinement.session import ReviewSession
from docfill.strategies.refinement.store import ExtractionResultStore, merge_field

__all__ = [
    "AsyncioTimer",
    "ExtractionResultStore",
    "RefinementOutcome",
    "RefinementScheduler",
    "RefinementStatus",
    "ReviewSession",
    "SchedulerState",
    "SmartRefinementEngine",
    "finalize_hint",
    "is_degenerate",
    "merge_field",
    "padded_crop_box",
]
