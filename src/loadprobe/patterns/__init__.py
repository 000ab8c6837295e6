"""Virtual user patterns for loadprobe.

A pattern yields ``(elapsed_seconds, target_users)`` tuples that the
scheduler turns into scale commands, one per tick.
"""

from __future__ import annotations

from loadprobe.patterns.base import LoadPattern
from loadprobe.patterns.constant import ConstantPattern
from loadprobe.patterns.stages import StagesPattern

__all__ = [
    "ConstantPattern",
    "LoadPattern",
    "StagesPattern",
]
