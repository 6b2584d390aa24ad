"""
Resource monitoring for the export stages.

Provides a `ResourceMonitor` that samples, on demand only:
- Python heap in use (tracemalloc when tracing, else the process data segment)
- Resident set size (psutil)
- 1-minute host CPU load average (psutil.getloadavg)

and a `profile_stage` context manager that wraps a stage with boundary samples
and wall-clock timing.

Usage examples:
    from user_export.utils.monitor import ResourceMonitor, profile_stage

    monitor = ResourceMonitor()
    monitor.log("Job Start")

    with profile_stage("generate", monitor) as stats:
        write_records()

    print(stats.duration_seconds, stats.rss_end_mb)
"""

from __future__ import annotations

import contextlib
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil

from user_export.utils.logging import get_logger

log = get_logger(__name__)

_MB = 1024 * 1024


@dataclass(frozen=True)
class ResourceSample:
    """
    One point-in-time reading of process memory and host load.
    """

    label: str
    heap_used_mb: float
    rss_mb: float
    cpu_load_1m: float

    def format_line(self) -> str:
        return (
            f"[{self.label}] Memory Used: {self.heap_used_mb:.2f} MB | "
            f"RSS: {self.rss_mb:.2f} MB | CPU Load: {self.cpu_load_1m:.2f}"
        )


class ResourceMonitor:
    """
    Samples the current process. Holds no state besides the psutil handle.
    """

    def __init__(self, process: Optional[psutil.Process] = None) -> None:
        self._process = process or psutil.Process()

    def _heap_bytes(self, memory: Any) -> int:
        if tracemalloc.is_tracing():
            current, _ = tracemalloc.get_traced_memory()
            return current
        # `data` is reported on Linux and BSD; other platforms only give RSS.
        return getattr(memory, "data", memory.rss)

    def sample(self, label: str) -> ResourceSample:
        memory = self._process.memory_info()
        return ResourceSample(
            label=label,
            heap_used_mb=round(self._heap_bytes(memory) / _MB, 2),
            rss_mb=round(memory.rss / _MB, 2),
            cpu_load_1m=round(psutil.getloadavg()[0], 2),
        )

    def log(self, label: str) -> ResourceSample:
        """
        Take a sample and emit it as a single human-readable log line.
        """
        sample = self.sample(label)
        log.info(
            sample.format_line(),
            extra={
                "checkpoint": label,
                "heap_used_mb": sample.heap_used_mb,
                "rss_mb": sample.rss_mb,
                "cpu_load_1m": sample.cpu_load_1m,
            },
        )
        return sample


@dataclass
class StageStats:
    """
    Container for stage-level measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    rss_start_mb: Optional[float] = field(default=None)
    rss_end_mb: Optional[float] = field(default=None)


@contextlib.contextmanager
def profile_stage(label: str, monitor: ResourceMonitor) -> Generator[StageStats, None, None]:
    """
    Time a stage and sample resources at its start and end.

    Samples are not logged; stages log their own completion lines. The end
    sample is taken even when the stage raises.
    """
    stats = StageStats(label=label)
    stats.rss_start_mb = monitor.sample(f"{label} start").rss_mb
    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts
        stats.rss_end_mb = monitor.sample(f"{label} end").rss_mb


__all__ = ["ResourceMonitor", "ResourceSample", "StageStats", "profile_stage"]
