"""HDR histogram wrapper for whole-run latency percentiles.

A run of a few hundred virtual users for a minute produces hundreds of
thousands of samples. The HDR histogram keeps the cumulative latency
distribution in fixed memory with three significant digits.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# Range: 1 microsecond to 60 seconds (in microseconds)
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 60_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency histogram that accepts and returns milliseconds.

    Values are stored as integer microseconds in the underlying
    ``HdrHistogram`` and clamped to its trackable range.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_TRACKABLE_US,
        highest_us: int = _HIGHEST_TRACKABLE_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            lowest_us, highest_us, significant_digits
        )

    def __len__(self) -> int:
        return int(self._histogram.total_count)

    def record(self, latency_ms: float) -> None:
        """Record one latency sample in milliseconds."""
        value_us = max(self.lowest_us, min(int(latency_ms * 1000), self.highest_us))
        self._histogram.record_value(value_us)

    def percentile(self, percentile: float) -> float:
        """Return the latency (ms) at ``percentile`` (0-100), 0.0 when empty."""
        if not len(self):
            return 0.0
        return self._histogram.get_value_at_percentile(percentile) / 1000.0

    def min(self) -> float:
        if not len(self):
            return 0.0
        return self._histogram.get_min_value() / 1000.0

    def max(self) -> float:
        if not len(self):
            return 0.0
        return self._histogram.get_max_value() / 1000.0

    def mean(self) -> float:
        if not len(self):
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0

    def reset(self) -> None:
        self._histogram.reset()
