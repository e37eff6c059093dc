"""Stage-based progress reporting.

Downstream tooling parses this output, so the text shape is fixed::

    Started deleting deployment
    Started deleting deployment > Deleting VM 'vm-1'... done. (00:00:03)
    Done deleting deployment
    <blank line>

A step writes its ``Started ... > Step...`` prefix without a newline and the
completion marker (`` done.``, `` failed (reason).`` or `` skipped (reason).``
followed by the elapsed time) ends the line.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from microdeck.lib.ui.console import UI

T = TypeVar("T")

Clock = Callable[[], float]


class SkipStageError(Exception):
    """Raised inside a step to mark it skipped instead of done."""

    def __init__(self, reason: str) -> None:
        """Create a skip marker with a short reason."""
        self.reason = reason
        super().__init__(reason)


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as HH:MM:SS."""
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class Stage:
    """A (possibly nested) phase of work that reports its steps."""

    def __init__(self, ui: UI, clock: Clock, name: str | None = None) -> None:
        self._ui = ui
        self._clock = clock
        self.name = name

    def _qualified(self, name: str) -> str:
        return f"{self.name} > {name}" if self.name else name

    def perform(self, name: str, action: Callable[[], T]) -> T:
        """Run a single step, reporting start and completion.

        Args:
            name: Step description, e.g. "Deleting VM 'vm-1'"
            action: Zero-argument callable doing the work

        Returns:
            The action's result, or None when the step was skipped.

        Raises:
            Exception: Whatever ``action`` raised, after reporting the failure.
        """
        self._ui.print_string(f"Started {self._qualified(name)}...")
        started = self._clock()
        try:
            result = action()
        except SkipStageError as skip:
            elapsed = format_duration(self._clock() - started)
            self._ui.print_line(f" skipped ({skip.reason}). ({elapsed})")
            return None  # type: ignore[return-value]
        except Exception as exc:
            elapsed = format_duration(self._clock() - started)
            self._ui.print_line(f" failed ({exc}). ({elapsed})")
            raise
        elapsed = format_duration(self._clock() - started)
        self._ui.print_line(f" done. ({elapsed})")
        return result

    def perform_complex(self, name: str, action: Callable[[Stage], T]) -> T:
        """Run a phase made of nested steps.

        Prints ``Started <phase>`` before and ``Done <phase>`` plus a blank
        separator line after. Nothing is printed after a failure so the last
        line shows the failing step.
        """
        qualified = self._qualified(name)
        self._ui.print_line(f"Started {qualified}")
        result = action(Stage(self._ui, self._clock, qualified))
        self._ui.print_line(f"Done {qualified}")
        self._ui.print_line("")
        return result


class EventLogger:
    """Entry point for stage reporting."""

    def __init__(self, ui: UI, clock: Clock = time.monotonic) -> None:
        self._ui = ui
        self._clock = clock

    def new_stage(self) -> Stage:
        """Return a root stage with no name."""
        return Stage(self._ui, self._clock)
