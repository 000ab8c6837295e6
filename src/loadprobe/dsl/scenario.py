"""Scenario and task definition dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from loadprobe._internal.types import ThinkTime


class SetupMethod(Protocol):
    """Unbound ``async def setup(self, client) -> Mapping | None``."""

    @property
    def __name__(self) -> str: ...

    async def __call__(self, instance: object, client: object) -> Mapping[str, Any] | None: ...


class IterationMethod(Protocol):
    """Unbound ``async def fn(self, client, data) -> None`` (tasks and teardown)."""

    @property
    def __name__(self) -> str: ...

    async def __call__(self, instance: object, client: object, data: Mapping[str, Any]) -> None: ...


@dataclass
class TaskDefinition:
    """Definition of a single task within a scenario.

    Attributes:
        name: Human-readable name for this task.
        func: The unbound async method run once per iteration.
        weight: Relative weight for weighted-random task selection.
    """

    name: str
    func: IterationMethod
    weight: int = 1


@dataclass
class ScenarioDefinition:
    """Complete definition of a load test scenario.

    Created by the ``@scenario`` class decorator. Options left as ``None``
    are taken from the ``RunConfig`` when the run starts.

    Attributes:
        name: Human-readable name for this scenario.
        cls: The original class that was decorated.
        tasks: Task definitions discovered from ``@task`` methods.
        setup_func: Optional coroutine run once before any virtual user.
        teardown_func: Optional coroutine run once after every virtual user
            has stopped.
        base_url: Base URL override.
        vus: Virtual user count override.
        duration_seconds: Run duration override.
        think_time: Pause range override (min, max) between iterations.
        default_headers: Headers applied to every request.
    """

    name: str
    cls: type
    tasks: list[TaskDefinition] = field(default_factory=list)
    setup_func: SetupMethod | None = None
    teardown_func: IterationMethod | None = None
    base_url: str | None = None
    vus: int | None = None
    duration_seconds: float | None = None
    think_time: ThinkTime | None = None
    default_headers: dict[str, str] = field(default_factory=dict)

    def options(self) -> dict[str, Any]:
        """Return the run options this scenario sets, for ``RunConfig.with_overrides``."""
        return {
            "base_url": self.base_url,
            "vus": self.vus,
            "duration_seconds": self.duration_seconds,
            "think_time": self.think_time,
        }
