"""Turns a LoadPattern timeline into per-tick scale commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from loadprobe.patterns.base import LoadPattern


class ScaleDirection(Enum):
    """Direction of a concurrency change between two ticks."""

    UP = auto()
    DOWN = auto()
    HOLD = auto()


@dataclass(frozen=True)
class ScaleCommand:
    """Target virtual user count for one tick.

    Attributes:
        elapsed_seconds: Offset from the start of the load phase.
        target_concurrency: Desired number of running virtual users.
        direction: Change relative to the previous tick.
        delta: Absolute change in virtual user count.
    """

    elapsed_seconds: float
    target_concurrency: int
    direction: ScaleDirection
    delta: int


class Scheduler:
    """Emits one ``ScaleCommand`` per tick of a ``LoadPattern``.

    Args:
        pattern: The virtual user pattern to follow.
        duration_seconds: Length of the load phase.
        tick_interval: Seconds between ticks.
    """

    def __init__(
        self,
        pattern: LoadPattern,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> None:
        self._pattern = pattern
        self._duration_seconds = duration_seconds
        self._tick_interval = tick_interval

    @property
    def duration_seconds(self) -> float:
        return self._duration_seconds

    def iter_commands(self) -> Iterator[ScaleCommand]:
        """Yield a ScaleCommand for each tick, starting from zero users."""
        prev = 0
        for elapsed, target in self._pattern.iter_concurrency(
            self._duration_seconds, self._tick_interval
        ):
            delta = target - prev
            if delta > 0:
                direction = ScaleDirection.UP
            elif delta < 0:
                direction = ScaleDirection.DOWN
            else:
                direction = ScaleDirection.HOLD
            yield ScaleCommand(
                elapsed_seconds=elapsed,
                target_concurrency=target,
                direction=direction,
                delta=abs(delta),
            )
            prev = target
