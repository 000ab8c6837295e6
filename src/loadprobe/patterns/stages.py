"""Staged pattern: ramp the virtual user count through a list of targets."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadprobe._internal.config import parse_duration
from loadprobe._internal.errors import ConfigError
from loadprobe.patterns.base import LoadPattern, _ticks

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from loadprobe._internal.types import Stage


class StagesPattern(LoadPattern):
    """Linearly interpolate the user count between consecutive stage targets.

    The run starts from ``start_users`` (default 0). Each stage moves the
    count to its target over its duration; a stage whose target equals the
    previous one holds steady. After the last stage the final target is
    kept.

    Example::

        # 30s ramp to 100 users, hold for a minute, 10s ramp down.
        StagesPattern([(30, 100), (60, 100), (10, 0)])

    Raises:
        ConfigError: On an empty stage list, a non-positive stage duration or
            a negative target.
    """

    def __init__(self, stages: Sequence[Stage], start_users: int = 0) -> None:
        if not stages:
            msg = "StagesPattern requires at least one stage"
            raise ConfigError(msg)
        for duration, target in stages:
            if duration <= 0:
                msg = f"stage duration must be positive, got {duration}"
                raise ConfigError(msg)
            if target < 0:
                msg = f"stage target must be non-negative, got {target}"
                raise ConfigError(msg)
        if start_users < 0:
            msg = f"start_users must be non-negative, got {start_users}"
            raise ConfigError(msg)
        self.stages: list[Stage] = [(float(d), int(t)) for d, t in stages]
        self.start_users = start_users

    @classmethod
    def parse(cls, values: Sequence[str]) -> StagesPattern:
        """Build from ``"DURATION:TARGET"`` strings such as ``"30s:100"``.

        Raises:
            ConfigError: If a value is malformed.
        """
        stages: list[Stage] = []
        for value in values:
            duration_str, sep, target_str = value.rpartition(":")
            if not sep:
                msg = f"Invalid stage {value!r}, expected DURATION:TARGET (e.g. '30s:100')"
                raise ConfigError(msg)
            try:
                target = int(target_str)
            except ValueError:
                msg = f"Invalid stage target in {value!r}: {target_str!r}"
                raise ConfigError(msg) from None
            stages.append((parse_duration(duration_str), target))
        return cls(stages)

    @property
    def total_duration(self) -> float:
        return sum(d for d, _ in self.stages)

    def users_at(self, elapsed: float) -> int:
        """Return the target user count ``elapsed`` seconds into the run."""
        stage_start = 0.0
        prev = self.start_users
        for duration, target in self.stages:
            if elapsed <= stage_start + duration:
                fraction = (elapsed - stage_start) / duration
                return round(prev + (target - prev) * fraction)
            stage_start += duration
            prev = target
        return prev

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        for elapsed in _ticks(duration_seconds, tick_interval):
            yield (elapsed, self.users_at(elapsed))

    def describe(self) -> str:
        parts = ", ".join(f"{d:g}s->{t}" for d, t in self.stages)
        return f"Stages: {parts}"
