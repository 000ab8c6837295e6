"""Abstract base class for virtual user patterns."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from loadprobe._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator


class LoadPattern(ABC):
    """How the number of running virtual users changes over a run.

    Subclasses yield ``(elapsed_seconds, target_users)`` tuples, one per tick,
    from ``0.0`` up to and including the run duration.
    """

    @abstractmethod
    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target_users)`` at each tick."""

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description for logs and reports."""

    @property
    def total_duration(self) -> float | None:
        """Duration implied by the pattern itself, or None if it has none."""
        return None


def _ticks(duration_seconds: float, tick_interval: float) -> Iterator[float]:
    """Yield tick offsets ``0, t, 2t, ...`` ending exactly at ``duration_seconds``."""
    _validate_positive(duration_seconds, "duration_seconds")
    _validate_positive(tick_interval, "tick_interval")
    n_full = int(duration_seconds // tick_interval)
    for i in range(n_full + 1):
        yield i * tick_interval
    if n_full * tick_interval < duration_seconds:
        yield duration_seconds


def _validate_positive(value: float, name: str) -> None:
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigError(msg)
