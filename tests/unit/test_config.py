"""Tests for configuration loading and duration parsing."""

from __future__ import annotations

import pytest

from loadprobe._internal.config import (
    DEFAULT_BASE_URL,
    RunConfig,
    load_config,
    parse_duration,
)
from loadprobe._internal.errors import ConfigError


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ("BASE_URL", "LOADPROBE_POOL_SIZE", "LOADPROBE_TIMEOUT", "LOADPROBE_GRACEFUL_STOP"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestRunConfig:
    """Tests for the RunConfig dataclass."""

    def test_defaults(self):
        """RunConfig defaults to 500 users for 60 seconds against localhost:3000."""
        config = RunConfig()
        assert config.base_url == "http://localhost:3000"
        assert config.vus == 500
        assert config.duration_seconds == 60.0
        assert config.think_time == (0.0, 0.0)
        assert config.connection_pool_size == 100
        assert config.request_timeout == 30.0
        assert config.strict_setup is False

    def test_frozen(self):
        """RunConfig is immutable."""
        config = RunConfig()
        with pytest.raises(AttributeError):
            config.vus = 1  # type: ignore[misc]

    def test_with_overrides_returns_copy(self):
        config = RunConfig()
        changed = config.with_overrides(vus=10, base_url="http://api.test")
        assert changed.vus == 10
        assert changed.base_url == "http://api.test"
        assert config.vus == 500

    def test_with_overrides_ignores_none(self):
        config = RunConfig(vus=7)
        assert config.with_overrides(vus=None, duration_seconds=None) == config

    def test_with_overrides_validates(self):
        with pytest.raises(ConfigError, match="vus must be >= 1"):
            RunConfig().with_overrides(vus=0)

    @pytest.mark.parametrize(
        ("field", "value", "match"),
        [
            ("base_url", "localhost:3000", "must start with http"),
            ("vus", 0, "vus must be >= 1"),
            ("duration_seconds", 0, "duration must be positive"),
            ("think_time", (2.0, 1.0), "think_time"),
            ("think_time", (-1.0, 1.0), "think_time"),
            ("request_timeout", 0, "request_timeout must be positive"),
            ("connection_pool_size", 0, "must be >= 1"),
            ("graceful_stop", -1, "graceful_stop must be non-negative"),
            ("tick_interval", 0, "tick_interval must be positive"),
        ],
    )
    def test_invalid_values(self, field: str, value: object, match: str):
        with pytest.raises(ConfigError, match=match):
            RunConfig(**{field: value})  # type: ignore[arg-type]


class TestParseDuration:
    """Tests for duration string parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("60s", 60.0),
            ("1m", 60.0),
            ("1m30s", 90.0),
            ("500ms", 0.5),
            ("2h", 7200.0),
            ("1.5s", 1.5),
            ("45", 45.0),
            (" 10S ", 10.0),
            (3, 3.0),
            (0.25, 0.25),
        ],
    )
    def test_valid(self, value: str | float, expected: float):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "abc", "10x", "s10", "10s abc", "1m 30s"])
    def test_invalid(self, value: str):
        with pytest.raises(ConfigError, match="Invalid duration"):
            parse_duration(value)

    @pytest.mark.parametrize("value", ["0s", "0", 0, -5])
    def test_non_positive(self, value: str | float):
        with pytest.raises(ConfigError, match="must be positive"):
            parse_duration(value)


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_defaults_from_env(self, clean_env: pytest.MonkeyPatch):
        """load_config returns defaults when no env vars are set."""
        config = load_config()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.connection_pool_size == 100
        assert config.request_timeout == 30.0
        assert config.graceful_stop == 5.0

    def test_base_url_from_env(self, clean_env: pytest.MonkeyPatch):
        """BASE_URL is read from the environment."""
        clean_env.setenv("BASE_URL", "http://api.example.com")
        assert load_config().base_url == "http://api.example.com"

    def test_empty_base_url_uses_default(self, clean_env: pytest.MonkeyPatch):
        clean_env.setenv("BASE_URL", "")
        assert load_config().base_url == DEFAULT_BASE_URL

    def test_invalid_base_url_raises_error(self, clean_env: pytest.MonkeyPatch):
        clean_env.setenv("BASE_URL", "ftp://example.com")
        with pytest.raises(ConfigError, match="base_url"):
            load_config()

    def test_pool_size_from_env(self, clean_env: pytest.MonkeyPatch):
        """LOADPROBE_POOL_SIZE is read from the environment."""
        clean_env.setenv("LOADPROBE_POOL_SIZE", "50")
        assert load_config().connection_pool_size == 50

    def test_timeout_from_env(self, clean_env: pytest.MonkeyPatch):
        """LOADPROBE_TIMEOUT is read from the environment."""
        clean_env.setenv("LOADPROBE_TIMEOUT", "10.5")
        assert load_config().request_timeout == 10.5

    def test_graceful_stop_from_env(self, clean_env: pytest.MonkeyPatch):
        clean_env.setenv("LOADPROBE_GRACEFUL_STOP", "0")
        assert load_config().graceful_stop == 0.0

    def test_invalid_pool_size_raises_error(self, clean_env: pytest.MonkeyPatch):
        """Non-integer LOADPROBE_POOL_SIZE raises ConfigError."""
        clean_env.setenv("LOADPROBE_POOL_SIZE", "not_a_number")
        with pytest.raises(ConfigError, match="must be an integer"):
            load_config()

    def test_zero_pool_size_raises_error(self, clean_env: pytest.MonkeyPatch):
        clean_env.setenv("LOADPROBE_POOL_SIZE", "0")
        with pytest.raises(ConfigError, match="must be >= 1"):
            load_config()

    def test_invalid_timeout_raises_error(self, clean_env: pytest.MonkeyPatch):
        """Non-numeric LOADPROBE_TIMEOUT raises ConfigError."""
        clean_env.setenv("LOADPROBE_TIMEOUT", "abc")
        with pytest.raises(ConfigError, match="must be a number"):
            load_config()
