"""
Lightweight profiling for walkthrough steps.

Each step is a handful of store round trips, so a background sampler is
overkill: wall-clock time comes from perf_counter, while CPU time and RSS
are read from psutil before and after the block.

Usage:
    from kvindex.utils.profiler import profile_block

    with profile_block("create") as stats:
        coordinator.create(record)

    print(stats.duration_ms, stats.rss_delta_bytes)
"""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for one block's measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    cpu_seconds: Optional[float] = field(default=None)
    rss_bytes: Optional[int] = field(default=None)
    rss_delta_bytes: Optional[int] = field(default=None)

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000.0


def _cpu_seconds(process: psutil.Process) -> float:
    times = process.cpu_times()
    return times.user + times.system


@contextlib.contextmanager
def profile_block(label: str) -> Generator[ProfileStats, None, None]:
    """
    Context manager measuring wall-clock time, process CPU time and RSS.

    Measurements are recorded even when the block raises.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    cpu_before = _cpu_seconds(process)
    rss_before = process.memory_info().rss

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts
        stats.cpu_seconds = max(_cpu_seconds(process) - cpu_before, 0.0)
        stats.rss_bytes = process.memory_info().rss
        stats.rss_delta_bytes = stats.rss_bytes - rss_before


__all__ = ["ProfileStats", "profile_block"]
