"""Run configuration loading for loadprobe."""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loadprobe._internal.errors import ConfigError

if TYPE_CHECKING:
    from loadprobe._internal.types import ThinkTime

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_VUS = 500
DEFAULT_DURATION_SECONDS = 60.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class RunConfig:
    """Configuration for a single load test run.

    Created once at process start and never mutated afterwards. Use
    :meth:`with_overrides` to derive a modified copy.

    Attributes:
        base_url: Target base URL for all requests.
        vus: Number of concurrent virtual users.
        duration_seconds: Steady-state run duration in seconds.
        think_time: Random pause range (min, max) in seconds between iterations.
        request_timeout: Per-request timeout in seconds.
        connection_pool_size: Maximum open connections per HTTP client.
        graceful_stop: Seconds virtual users get to finish their current
            iteration once the run stops, before being cancelled.
        tick_interval: Seconds between scheduler ticks and metric snapshots.
        strict_setup: If True, any failed setup request aborts the run.
    """

    base_url: str = DEFAULT_BASE_URL
    vus: int = DEFAULT_VUS
    duration_seconds: float = DEFAULT_DURATION_SECONDS
    think_time: ThinkTime = (0.0, 0.0)
    request_timeout: float = 30.0
    connection_pool_size: int = 100
    graceful_stop: float = 5.0
    tick_interval: float = 1.0
    strict_setup: bool = False

    def __post_init__(self) -> None:
        _validate(self)

    def with_overrides(self, **changes: Any) -> RunConfig:
        """Return a validated copy with the given fields replaced.

        ``None`` values are ignored so CLI options can be passed through
        unconditionally.

        Raises:
            ConfigError: If a resulting value is out of range.
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)


def _validate(config: RunConfig) -> None:
    if not config.base_url.startswith(("http://", "https://")):
        msg = f"base_url must start with http:// or https://, got: {config.base_url!r}"
        raise ConfigError(msg)
    if config.vus < 1:
        msg = f"vus must be >= 1, got: {config.vus}"
        raise ConfigError(msg)
    if config.duration_seconds <= 0:
        msg = f"duration must be positive, got: {config.duration_seconds}"
        raise ConfigError(msg)
    min_t, max_t = config.think_time
    if min_t < 0 or max_t < min_t:
        msg = f"think_time must satisfy 0 <= min <= max, got: {config.think_time}"
        raise ConfigError(msg)
    if config.request_timeout <= 0:
        msg = f"request_timeout must be positive, got: {config.request_timeout}"
        raise ConfigError(msg)
    if config.connection_pool_size < 1:
        msg = f"connection_pool_size must be >= 1, got: {config.connection_pool_size}"
        raise ConfigError(msg)
    if config.graceful_stop < 0:
        msg = f"graceful_stop must be non-negative, got: {config.graceful_stop}"
        raise ConfigError(msg)
    if config.tick_interval <= 0:
        msg = f"tick_interval must be positive, got: {config.tick_interval}"
        raise ConfigError(msg)


def parse_duration(value: str | float) -> float:
    """Parse a duration such as ``"60s"``, ``"1m30s"`` or ``"500ms"``.

    Bare numbers (or numeric strings) are interpreted as seconds.

    Args:
        value: Duration string or number of seconds.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the value cannot be parsed or is not positive.
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
                pos = match.end()
            if pos == 0 or pos != len(text):
                msg = f"Invalid duration: {value!r} (expected e.g. '60s', '1m30s', '500ms')"
                raise ConfigError(msg) from None

    if seconds <= 0:
        msg = f"Duration must be positive, got: {value!r}"
        raise ConfigError(msg)
    return seconds


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None


def load_config() -> RunConfig:
    """Load the run configuration from environment variables with defaults.

    Environment variables:
        BASE_URL: Target base URL (default: http://localhost:3000).
        LOADPROBE_POOL_SIZE: Connections per HTTP client (default: 100).
        LOADPROBE_TIMEOUT: Request timeout in seconds (default: 30.0).
        LOADPROBE_GRACEFUL_STOP: Graceful stop window in seconds (default: 5.0).

    Returns:
        Populated RunConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    pool_size_str = os.environ.get("LOADPROBE_POOL_SIZE", "100")
    try:
        pool_size = int(pool_size_str)
    except ValueError:
        msg = f"LOADPROBE_POOL_SIZE must be an integer, got: {pool_size_str!r}"
        raise ConfigError(msg) from None

    return RunConfig(
        base_url=os.environ.get("BASE_URL") or DEFAULT_BASE_URL,
        request_timeout=_env_float("LOADPROBE_TIMEOUT", "30.0"),
        connection_pool_size=pool_size,
        graceful_stop=_env_float("LOADPROBE_GRACEFUL_STOP", "5.0"),
    )
