"""Test session lifecycle: setup, load phase, graceful stop and teardown."""

from __future__ import annotations

import asyncio
import contextlib
import copy
import signal
import sys
import time
from collections.abc import Mapping
from enum import Enum, auto
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from loadprobe._internal.errors import EngineError, SetupError
from loadprobe._internal.logging import get_logger
from loadprobe.dsl.http_client import HttpClient
from loadprobe.engine.scheduler import Scheduler
from loadprobe.engine.virtual_user import VirtualUser
from loadprobe.metrics.checks import CheckCollector
from loadprobe.metrics.collector import MetricCollector
from loadprobe.metrics.models import TestResult
from loadprobe.metrics.store import MetricStore
from loadprobe.patterns.constant import ConstantPattern

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadprobe._internal.config import RunConfig
    from loadprobe.dsl.http_client import RequestMetric
    from loadprobe.dsl.scenario import ScenarioDefinition
    from loadprobe.metrics.models import MetricSnapshot
    from loadprobe.patterns.base import LoadPattern

logger = get_logger("engine.session")

SetupResult = Mapping[str, Any]


def freeze_setup_data(value: object) -> SetupResult:
    """Turn a setup hook's return value into a read-only mapping.

    The value is deep-copied so that neither the setup hook nor any virtual
    user holds a mutable reference to what the others see.

    Raises:
        SetupError: If the value is neither None nor a mapping.
    """
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        msg = f"Setup must return a mapping or None, got {type(value).__name__}"
        raise SetupError(msg)
    return MappingProxyType(copy.deepcopy(dict(value)))


class SessionState(Enum):
    """State machine for a test session."""

    CREATED = auto()
    SETUP = auto()
    RUNNING = auto()
    STOPPING = auto()
    TEARDOWN = auto()
    COMPLETED = auto()
    FAILED = auto()


class TestSession:
    """Runs one scenario in the current event loop.

    State machine::

        CREATED -> SETUP -> RUNNING -> STOPPING -> TEARDOWN -> COMPLETED
                        \\-> FAILED (setup or engine error)

    The setup hook runs exactly once, before the first virtual user is
    created, and its frozen result is handed to every user. Request, task
    and check failures never end the run early: it lasts the configured
    duration unless ``stop()`` or SIGINT/SIGTERM ends it sooner.
    """

    __test__ = False

    def __init__(
        self,
        scenario: ScenarioDefinition,
        config: RunConfig,
        pattern: LoadPattern | None = None,
        *,
        worker_id: int = 0,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a test session.

        Args:
            scenario: The scenario definition to execute.
            config: Resolved run configuration.
            pattern: Virtual user pattern. Defaults to ``config.vus``
                constant users.
            worker_id: Worker identifier for metric tagging.
            on_snapshot: Called with every per-tick MetricSnapshot.
            handle_signals: Install SIGINT/SIGTERM handlers for graceful stop.
        """
        self._scenario = scenario
        self._config = config
        self._pattern = pattern or ConstantPattern(users=config.vus)
        self._duration_seconds = self._pattern.total_duration or config.duration_seconds
        self._worker_id = worker_id
        self._on_snapshot = on_snapshot
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._metrics = MetricCollector(worker_id=worker_id)
        self._checks = CheckCollector()
        self._store = MetricStore()
        self._stop_event = asyncio.Event()
        self._active: list[tuple[VirtualUser, asyncio.Task[None]]] = []
        self._retiring: list[tuple[VirtualUser, asyncio.Task[None]]] = []
        self._all_users: list[VirtualUser] = []
        self._hook_instance: object | None = None
        self._setup_data: SetupResult = MappingProxyType({})

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_user_count(self) -> int:
        """Return the number of virtual users not asked to stop."""
        return len(self._active)

    @property
    def duration_seconds(self) -> float:
        return self._duration_seconds

    @property
    def setup_data(self) -> SetupResult:
        """The frozen setup result shared with every virtual user."""
        return self._setup_data

    async def run(self) -> TestResult:
        """Execute setup, the load phase and teardown.

        Returns:
            TestResult with per-tick snapshots and the whole-run summary.

        Raises:
            SetupError: If the setup phase fails.
            EngineError: If the load phase fails unexpectedly.
        """
        logger.info(
            "Starting test session: scenario=%s, target=%s, duration=%.1fs, pattern=%s",
            self._scenario.name,
            self._config.base_url,
            self._duration_seconds,
            self._pattern.describe(),
        )

        if self._handle_signals:
            self._install_signal_handlers()

        try:
            self._state = SessionState.SETUP
            self._setup_data = await self._run_setup()
            start_time, end_time = await self._run_load_phase()
        except SetupError:
            self._state = SessionState.FAILED
            logger.exception("Setup phase failed")
            raise
        except EngineError:
            self._state = SessionState.FAILED
            raise
        finally:
            if self._handle_signals:
                self._remove_signal_handlers()

        self._state = SessionState.TEARDOWN
        await self._run_teardown()

        total_duration = end_time - start_time
        completed, interrupted = self._iteration_counts()
        final_summary = self._metrics.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            iterations=completed,
        )
        self._checks.flush()
        final_summary.checks = self._checks.get_totals()

        self._state = SessionState.COMPLETED
        logger.info(
            "Test completed: duration=%.1fs, iterations=%d, requests=%d, "
            "avg_rps=%.1f, p95=%.1fms, error_rate=%.2f%%",
            total_duration,
            completed,
            final_summary.total_requests,
            final_summary.requests_per_second,
            final_summary.latency_p95,
            final_summary.error_rate * 100,
        )

        return TestResult(
            scenario_name=self._scenario.name,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            pattern_description=self._pattern.describe(),
            snapshots=self._store.get_all(),
            final_summary=final_summary,
            checks=final_summary.checks,
            iterations_completed=completed,
            iterations_interrupted=interrupted,
            setup_data=self._setup_data,
        )

    async def stop(self) -> None:
        """Request a graceful stop; users finish their current iteration."""
        if self._state in (SessionState.SETUP, SessionState.RUNNING):
            logger.info("Graceful shutdown requested")
            self._stop_event.set()

    # -- phases ---------------------------------------------------------------

    def _hook_client(self, phase: str, callback: Callable[[RequestMetric], None]) -> HttpClient:
        return HttpClient(
            base_url=self._config.base_url,
            headers=dict(self._scenario.default_headers),
            metric_callback=callback,
            worker_id=self._worker_id,
            timeout=self._config.request_timeout,
            pool_size=self._config.connection_pool_size,
            raise_on_error=False,
            phase=phase,  # type: ignore[arg-type]
        )

    async def _run_setup(self) -> SetupResult:
        """Run the setup hook once and freeze its result.

        Seed requests are fire-and-forget: failures are logged and
        tolerated, unless ``strict_setup`` is set.
        """
        try:
            self._hook_instance = self._scenario.cls()
        except Exception as exc:
            msg = f"Scenario {self._scenario.name!r} could not be instantiated: {exc}"
            raise SetupError(msg) from exc
        if self._scenario.setup_func is None:
            return MappingProxyType({})

        setup_metrics: list[RequestMetric] = []

        def _record(metric: RequestMetric) -> None:
            setup_metrics.append(metric)
            self._metrics.record(metric)

        async with self._hook_client("setup", _record) as client:
            try:
                raw = await self._scenario.setup_func(self._hook_instance, client)
            except Exception as exc:
                msg = f"Setup hook of scenario {self._scenario.name!r} raised: {exc}"
                raise SetupError(msg) from exc

        failed = [m for m in setup_metrics if m.is_error]
        if failed:
            first = failed[0]
            reason = first.error or f"HTTP {first.status_code}"
            if self._config.strict_setup:
                msg = (
                    f"{len(failed)} of {len(setup_metrics)} setup requests failed "
                    f"(first: {first.method} {first.url} -> {reason})"
                )
                raise SetupError(msg)
            logger.warning(
                "%d of %d setup requests failed, continuing (first: %s %s -> %s)",
                len(failed),
                len(setup_metrics),
                first.method,
                first.url,
                reason,
            )

        logger.info("Setup complete: %d requests issued", len(setup_metrics))
        return freeze_setup_data(raw)

    async def _run_load_phase(self) -> tuple[float, float]:
        """Drive virtual users through the scheduler's ticks.

        Returns:
            ``(start_time, end_time)`` monotonic timestamps of the load phase.
        """
        scheduler = Scheduler(self._pattern, self._duration_seconds, self._config.tick_interval)
        start_time = time.monotonic()
        last_completed = 0
        self._state = SessionState.RUNNING

        try:
            for command in scheduler.iter_commands():
                if await self._wait_until(start_time + command.elapsed_seconds):
                    break

                await self._scale_users(command.target_concurrency)

                completed, _ = self._iteration_counts()
                snapshot = self._metrics.flush(
                    elapsed_seconds=time.monotonic() - start_time,
                    active_users=self.active_user_count,
                    iterations=completed - last_completed,
                )
                snapshot.checks = self._checks.flush()
                last_completed = completed
                self._store.append(snapshot)
                if self._on_snapshot is not None:
                    self._on_snapshot(snapshot)

                logger.debug(
                    "Tick %.1fs: users=%d, rps=%.1f, p95=%.1fms, errors=%d",
                    snapshot.elapsed_seconds,
                    snapshot.active_users,
                    snapshot.requests_per_second,
                    snapshot.latency_p95,
                    snapshot.total_errors,
                )

            # The last tick may land a little before the deadline.
            await self._wait_until(start_time + self._duration_seconds)

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Test session failed")
            raise EngineError("Test session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            await self._shutdown_users()

        return start_time, time.monotonic()

    async def _run_teardown(self) -> None:
        if self._scenario.teardown_func is None:
            return
        async with self._hook_client("teardown", self._metrics.record) as client:
            try:
                await self._scenario.teardown_func(self._hook_instance, client, self._setup_data)
            except Exception:
                logger.warning("Teardown hook failed", exc_info=True)

    # -- virtual users --------------------------------------------------------

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until ``deadline`` or a stop request. Returns True if stopped."""
        remaining = deadline - time.monotonic()
        if remaining > 0 and not self._stop_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
        return self._stop_event.is_set()

    async def _scale_users(self, target: int) -> None:
        """Start or retire virtual users to match ``target``.

        Retired users (most recent first) are asked to stop and finish their
        current iteration in the background.
        """
        current = self.active_user_count

        for _ in range(target - current):
            vu = VirtualUser(
                vu_id=len(self._all_users),
                scenario=self._scenario,
                data=self._setup_data,
                config=self._config,
                metrics=self._metrics,
                checks=self._checks,
                worker_id=self._worker_id,
            )
            self._all_users.append(vu)
            task = asyncio.create_task(vu.run(), name=f"virtual-user-{vu.vu_id}")
            self._active.append((vu, task))

        for _ in range(current - target):
            vu, task = self._active.pop()
            vu.request_stop()
            self._retiring.append((vu, task))

        self._retiring = [(vu, t) for vu, t in self._retiring if not t.done()]

    async def _shutdown_users(self) -> None:
        """Stop every user, waiting up to ``graceful_stop`` before cancelling."""
        running = self._active + self._retiring
        for vu, _task in running:
            vu.request_stop()

        tasks = [t for _, t in running]
        if tasks:
            _done, pending = await asyncio.wait(tasks, timeout=self._config.graceful_stop)
            for task in pending:
                task.cancel()
            if pending:
                logger.info("Cancelled %d virtual users after graceful stop", len(pending))
                await asyncio.wait(pending, timeout=2.0)

        self._active.clear()
        self._retiring.clear()
        logger.debug("All virtual users shut down")

    def _iteration_counts(self) -> tuple[int, int]:
        completed = sum(vu.completed for vu in self._all_users)
        interrupted = sum(vu.interrupted for vu in self._all_users)
        return completed, interrupted

    # -- signals --------------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to a graceful stop."""
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            signal.signal(signal.SIGINT, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
            signal.signal(signal.SIGTERM, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))

    def _remove_signal_handlers(self) -> None:
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
