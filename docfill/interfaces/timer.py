"""Timer interfaces.

The refinement scheduler arms and cancels delayed callbacks through
this abstraction so it can be driven without an event loop clock.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable


class TimerHandle(ABC):
    """A scheduled callback that has not necessarily fired yet."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. No-op once it has run."""


class BaseTimer(ABC):
    """Schedules callbacks after a delay."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""
