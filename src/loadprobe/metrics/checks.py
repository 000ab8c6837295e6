"""Collection and aggregation of check outcomes."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from loadprobe.metrics.models import CheckStats

if TYPE_CHECKING:
    from loadprobe.metrics.models import CheckOutcome


class CheckCollector:
    """Buffers ``CheckOutcome`` records and folds them into pass/fail counters.

    ``record`` is called from virtual user coroutines; ``flush`` is called by
    the session once per tick. Both run on the same event loop, and deque
    appends are atomic, so no lock is needed.
    """

    def __init__(self) -> None:
        self._buffer: deque[CheckOutcome] = deque()
        self._totals: dict[str, CheckStats] = {}

    @property
    def pending_count(self) -> int:
        """Return the number of outcomes not yet flushed."""
        return len(self._buffer)

    def record(self, outcome: CheckOutcome) -> None:
        """Buffer a single check outcome."""
        self._buffer.append(outcome)

    def flush(self) -> dict[str, CheckStats]:
        """Drain the buffer into per-interval counters.

        The interval counters are also merged into the cumulative totals.

        Returns:
            Check counters for the outcomes drained by this call.
        """
        interval: dict[str, CheckStats] = {}
        while self._buffer:
            outcome = self._buffer.popleft()
            stats = interval.get(outcome.name)
            if stats is None:
                stats = interval[outcome.name] = CheckStats(name=outcome.name)
            if outcome.passed:
                stats.passes += 1
            else:
                stats.fails += 1

        for name, stats in interval.items():
            total = self._totals.get(name)
            if total is None:
                total = self._totals[name] = CheckStats(name=name)
            total.merge(stats)

        return interval

    def get_totals(self) -> dict[str, CheckStats]:
        """Return a copy of the cumulative counters, pending outcomes excluded."""
        return {
            name: CheckStats(name=name, passes=s.passes, fails=s.fails)
            for name, s in self._totals.items()
        }
