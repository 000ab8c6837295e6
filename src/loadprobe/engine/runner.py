"""Blocking entry point that runs a scenario to completion."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loadprobe._internal.config import load_config
from loadprobe._internal.logging import get_logger, setup_logging
from loadprobe.dsl.loader import load_builtin_scenario, load_scenario
from loadprobe.engine.session import TestSession

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from loadprobe._internal.config import RunConfig
    from loadprobe.dsl.scenario import ScenarioDefinition
    from loadprobe.metrics.models import MetricSnapshot, TestResult
    from loadprobe.patterns.base import LoadPattern

logger = get_logger("engine.runner")


def _loop_runner() -> Callable[[Coroutine[Any, Any, TestResult]], TestResult]:
    """Return ``uvloop.run`` where uvloop is available, else ``asyncio.run``."""
    if sys.platform == "win32":
        return asyncio.run

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return asyncio.run

    logger.debug("Running on uvloop")
    return uvloop.run


class LoadTestRunner:
    """Loads a scenario, resolves its configuration and runs it.

    Scenario options (``vus``, ``duration``, ...) override the environment
    configuration, and explicit ``overrides`` (usually CLI flags) override
    both.

    Attributes:
        scenario: The scenario definition to run.
        config: The resolved, immutable run configuration.
    """

    def __init__(
        self,
        scenario: ScenarioDefinition | str | Path | None = None,
        *,
        config: RunConfig | None = None,
        pattern: LoadPattern | None = None,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        log_level: int = logging.INFO,
        json_logs: bool = False,
        **overrides: object,
    ) -> None:
        """Initialize the runner.

        Args:
            scenario: A ScenarioDefinition, a path to a scenario file, or
                None for the built-in users-API scenario.
            config: Base configuration. Defaults to ``load_config()``.
            pattern: Virtual user pattern. Defaults to constant ``vus`` users.
            on_snapshot: Called with every per-tick MetricSnapshot.
            log_level: Logging level.
            json_logs: Emit JSON log lines.
            **overrides: ``RunConfig`` fields to override; None is ignored.

        Raises:
            ScenarioError: If the scenario file cannot be loaded.
            ConfigError: If the resulting configuration is invalid.
        """
        if scenario is None:
            scenario = load_builtin_scenario()
        elif isinstance(scenario, (str, Path)):
            scenario = load_scenario(scenario)

        base = config if config is not None else load_config()
        self.scenario = scenario
        self.config = base.with_overrides(**scenario.options()).with_overrides(**overrides)
        self._pattern = pattern
        self.on_snapshot = on_snapshot
        self._log_level = log_level
        self._json_logs = json_logs

    def run(self) -> TestResult:
        """Run the scenario and block until it finishes.

        Returns:
            The completed TestResult.

        Raises:
            SetupError: If the setup phase fails.
            EngineError: If the run fails unexpectedly.
        """
        setup_logging(level=self._log_level, json_format=self._json_logs)
        return _loop_runner()(self.run_async())

    async def run_async(self) -> TestResult:
        """Run the scenario inside an already running event loop."""
        session = TestSession(
            scenario=self.scenario,
            config=self.config,
            pattern=self._pattern,
            on_snapshot=self.on_snapshot,
        )
        return await session.run()
