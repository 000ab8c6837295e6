"""Thread-safe in-memory time-series storage for metric snapshots."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loadprobe.metrics.models import MetricSnapshot


class MetricStore:
    """Ordered storage for per-tick ``MetricSnapshot`` objects.

    The session appends from the event loop thread while snapshot callbacks
    (such as the CLI live view) may read from elsewhere, so access is
    guarded by a lock.
    """

    def __init__(self) -> None:
        self._snapshots: list[MetricSnapshot] = []
        self._lock = threading.Lock()

    def append(self, snapshot: MetricSnapshot) -> None:
        with self._lock:
            self._snapshots.append(snapshot)

    def get_all(self) -> list[MetricSnapshot]:
        """Return a copy of all snapshots in chronological order."""
        with self._lock:
            return list(self._snapshots)

    def get_latest(self) -> MetricSnapshot | None:
        with self._lock:
            return self._snapshots[-1] if self._snapshots else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
