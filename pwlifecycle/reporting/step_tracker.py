# pwlifecycle/reporting/step_tracker.py
"""
Step Tracker

Remembers the 1-based index and name of the most recently entered step of
the running test so failures can be reported with their location.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class StepState:
    index: int = 0
    name: Optional[str] = None


class StepTracker:
    """
    Per-worker step counter.

    Example:
        >>> tracker = StepTracker()
        >>> tracker.reset()
        >>> tracker.advance("Open login page")
        >>> tracker.current_index, tracker.current_name
        (1, 'Open login page')
    """

    def __init__(self):
        self._state: Optional[StepState] = None

    def _get(self) -> StepState:
        if self._state is None:
            self._state = StepState()
        return self._state

    def reset(self) -> None:
        """Start a new test: index 0, no name."""
        state = self._get()
        state.index = 0
        state.name = None

    def advance(self, name: Optional[str]) -> int:
        """Enter the next step and return its index."""
        state = self._get()
        state.index += 1
        state.name = name
        return state.index

    @property
    def current_index(self) -> int:
        return self._state.index if self._state is not None else 0

    @property
    def current_name(self) -> Optional[str]:
        return self._state.name if self._state is not None else None

    @property
    def active(self) -> bool:
        return self._state is not None

    def clear(self) -> None:
        """Forget all state so the next test cannot read it."""
        self._state = None
