"""Refinement scheduling.

Decides when smart refinement runs: wait until the user stops editing
hints, then refine every labeled hint whose geometry changed since it
was last processed.
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Iterable

from docfill.interfaces.timer import BaseTimer, TimerHandle
from docfill.strategies.refinement.engine import RefinementOutcome
from docfill.strategies.refinement.geometry import is_degenerate
from docfill.strategies.template_engine.models import Hint

logger = logging.getLogger(__name__)

DispatchFn = Callable[[list[Hint]], Awaitable[list[RefinementOutcome]]]
ReportFn = Callable[[list[RefinementOutcome]], None]


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioTimer(BaseTimer):
    """Timer backed by the running event loop's ``call_later``."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return _AsyncioTimerHandle(loop.call_later(delay, callback))


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    DISPATCHING = "dispatching"


class RefinementScheduler:
    """Debounced, idempotent dispatcher of smart refinement.

    Call :meth:`on_hints_changed` on every annotation edit. Only labeled,
    non-degenerate hints count. A burst of edits re-arms the debounce
    timer; when it fires, hints whose signature differs from the one
    last dispatched are refined concurrently.
    """

    def __init__(
        self,
        dispatch: DispatchFn,
        timer: BaseTimer | None = None,
        debounce_seconds: float = 1.5,
        on_report: ReportFn | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            dispatch: Coroutine function refining a batch of hints.
            timer: Delayed-callback source (default: event loop timer).
            debounce_seconds: Quiet period before dispatching.
            on_report: Called with each batch's outcomes.
        """
        self._dispatch = dispatch
        self._timer = timer or AsyncioTimer()
        self._debounce_seconds = debounce_seconds
        self._on_report = on_report

        self._handle: TimerHandle | None = None
        self._pending: list[Hint] = []
        self._pending_signature: tuple = ()
        self._last_signature: tuple = ()
        self._processed: dict[str, tuple] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> SchedulerState:
        if self._handle is not None:
            return SchedulerState.PENDING
        if self._tasks:
            return SchedulerState.DISPATCHING
        return SchedulerState.IDLE

    @property
    def last_signature(self) -> tuple:
        return self._last_signature

    @staticmethod
    def eligible_hints(hints: Iterable[Hint]) -> list[Hint]:
        """Hints that take part in refinement: labeled and with area."""
        return [h for h in hints if h.is_labeled and not is_degenerate(h)]

    def on_hints_changed(self, hints: Iterable[Hint]) -> None:
        """Observe the full current hint list after an edit."""
        eligible = self.eligible_hints(hints)
        signature = tuple(h.signature() for h in eligible)

        self._cancel_timer()

        if not eligible or signature == self._last_signature:
            return

        self._pending = eligible
        self._pending_signature = signature
        self._handle = self._timer.call_later(self._debounce_seconds, self._fire)
        logger.debug(
            f"Refinement armed for {len(eligible)} hints "
            f"({self._debounce_seconds}s debounce)"
        )

    def cancel(self) -> None:
        """Disarm a pending dispatch. In-flight refinements keep running."""
        self._cancel_timer()
        self._pending = []

    async def wait_idle(self) -> None:
        """Wait for every dispatched batch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        hints, self._pending = self._pending, []
        self._last_signature = self._pending_signature

        current_ids = {h.id for h in hints}
        self._processed = {
            hint_id: sig for hint_id, sig in self._processed.items() if hint_id in current_ids
        }

        changed = [h for h in hints if self._processed.get(h.id) != h.signature()]
        for hint in changed:
            self._processed[hint.id] = hint.signature()

        if not changed:
            logger.debug("Hint set changed but no hint geometry did; nothing to refine")
            return

        logger.info(f"Dispatching smart refinement for {len(changed)} hints")
        task = asyncio.get_running_loop().create_task(self._run(changed))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, hints: list[Hint]) -> None:
        try:
            outcomes = await self._dispatch(hints)
        except Exception as e:
            logger.error(f"Refinement dispatch failed: {e}", exc_info=True)
            return

        if self._on_report is not None:
            try:
                self._on_report(outcomes)
            except Exception as e:
                logger.error(f"Refinement report callback failed: {e}")
