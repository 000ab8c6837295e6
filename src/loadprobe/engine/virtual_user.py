"""A single virtual user: one client, one iteration loop."""

from __future__ import annotations

import asyncio
import contextlib
import random
from typing import TYPE_CHECKING, Any

from loadprobe._internal.logging import get_logger
from loadprobe.dsl.checks import iteration_context
from loadprobe.dsl.http_client import HttpClient

if TYPE_CHECKING:
    from collections.abc import Mapping

    from loadprobe._internal.config import RunConfig
    from loadprobe.dsl.scenario import ScenarioDefinition, TaskDefinition
    from loadprobe.metrics.checks import CheckCollector
    from loadprobe.metrics.collector import MetricCollector

logger = get_logger("engine.virtual_user")


def pick_weighted_task(tasks: list[TaskDefinition]) -> TaskDefinition:
    """Select a task using weighted-random distribution."""
    if len(tasks) == 1:
        return tasks[0]
    weights = [t.weight for t in tasks]
    return random.choices(tasks, weights=weights, k=1)[0]  # noqa: S311


class VirtualUser:
    """One simulated client repeatedly running scenario iterations.

    Each user owns its scenario instance and its ``HttpClient`` (so
    connections are reused across its iterations), and receives the shared
    setup data at construction. Stop requests are honoured between
    iterations and interrupt think time, never an in-flight request.

    Attributes:
        vu_id: Unique identifier within the run.
        iterations: Iterations started so far; also the next iteration number.
        completed: Iterations whose task returned normally.
        interrupted: Iterations whose task raised or was cancelled.
    """

    def __init__(
        self,
        vu_id: int,
        scenario: ScenarioDefinition,
        data: Mapping[str, Any],
        config: RunConfig,
        *,
        metrics: MetricCollector,
        checks: CheckCollector,
        worker_id: int = 0,
    ) -> None:
        self.vu_id = vu_id
        self.iterations = 0
        self.completed = 0
        self.interrupted = 0
        self._scenario = scenario
        self._data = data
        self._config = config
        self._metrics = metrics
        self._checks = checks
        self._worker_id = worker_id
        self._stop_event = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the user to stop after its current iteration."""
        self._stop_event.set()

    async def run(self) -> None:
        """Run iterations until a stop is requested or the task is cancelled."""
        instance = self._scenario.cls()
        async with HttpClient(
            base_url=self._config.base_url,
            headers=dict(self._scenario.default_headers),
            metric_callback=self._metrics.record,
            worker_id=self._worker_id,
            timeout=self._config.request_timeout,
            pool_size=self._config.connection_pool_size,
            raise_on_error=False,
            phase="iteration",
        ) as client:
            try:
                while not self._stop_event.is_set():
                    await self._iterate(instance, client)
                    await self._think()
            except asyncio.CancelledError:
                logger.debug("Virtual user %d cancelled", self.vu_id)

    async def _iterate(self, instance: object, client: HttpClient) -> None:
        task_def = pick_weighted_task(self._scenario.tasks)
        iteration = self.iterations
        self.iterations += 1
        with iteration_context(self.vu_id, iteration, self._checks):
            try:
                await task_def.func(instance, client, self._data)
            except asyncio.CancelledError:
                self.interrupted += 1
                raise
            except Exception:
                self.interrupted += 1
                logger.debug(
                    "Task %s failed for user %d (iteration %d)",
                    task_def.name,
                    self.vu_id,
                    iteration,
                    exc_info=True,
                )
            else:
                self.completed += 1

    async def _think(self) -> None:
        min_t, max_t = self._config.think_time
        if max_t <= 0:
            # Yield so a task without I/O cannot starve the other users.
            await asyncio.sleep(0)
            return
        delay = random.uniform(min_t, max_t)  # noqa: S311
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
