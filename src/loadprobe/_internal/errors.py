"""Custom exception hierarchy for loadprobe."""

from __future__ import annotations


class LoadProbeError(Exception):
    """Base exception for all loadprobe errors.

    Catch this to handle any failure raised by the framework itself. Failed
    requests and failed checks are never raised: they are recorded as data.
    """


class ScenarioError(LoadProbeError):
    """Raised when a scenario definition is invalid.

    Examples:
        - A class decorated with @scenario has no @task methods.
        - A @task method is not a coroutine function.
        - A scenario file cannot be loaded or parsed.
    """


class ConfigError(LoadProbeError):
    """Raised when configuration is invalid or missing.

    Examples:
        - An environment variable has an invalid value.
        - A duration string such as ``"1x"`` cannot be parsed.
    """


class EngineError(LoadProbeError):
    """Raised when a test session cannot run to completion."""


class SetupError(EngineError):
    """Raised when the one-time setup phase fails.

    Either the setup hook raised, or ``strict_setup`` is enabled and one of
    the seeding requests failed.
    """
