"""Constant pattern: a fixed number of virtual users for the whole run."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadprobe._internal.errors import ConfigError
from loadprobe.patterns.base import LoadPattern, _ticks

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConstantPattern(LoadPattern):
    """Run ``users`` virtual users from the first tick to the last.

    Raises:
        ConfigError: If *users* < 1.
    """

    def __init__(self, users: int) -> None:
        if users < 1:
            msg = f"users must be >= 1, got {users}"
            raise ConfigError(msg)
        self.users = users

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        for elapsed in _ticks(duration_seconds, tick_interval):
            yield (elapsed, self.users)

    def describe(self) -> str:
        return f"Constant: {self.users} users"
