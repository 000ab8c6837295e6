"""Shared type aliases for loadprobe."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# Think time range (min_seconds, max_seconds).
ThinkTime = tuple[float, float]

# Load stage: (duration_seconds, target_users).
Stage = tuple[float, int]
