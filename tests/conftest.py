"""
Pytest configuration for the user export job.

Provides fixtures for:
- A resource monitor that records checkpoint labels instead of sampling psutil
- A pacing policy that counts pauses instead of sleeping
- Run configuration rooted in a temporary data directory
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Generator, List

import pytest

from user_export.config import get_settings
from user_export.orchestrator import RunConfig
from user_export.stages.generator import RecordGenerator
from user_export.utils.monitor import ResourceMonitor, ResourceSample

DEFAULT_SEED = 1234


class RecordingMonitor(ResourceMonitor):
    """Returns fixed samples and remembers every label."""

    def __init__(self) -> None:
        self.sampled: List[str] = []
        self.logged: List[str] = []

    def sample(self, label: str) -> ResourceSample:
        self.sampled.append(label)
        return ResourceSample(label=label, heap_used_mb=1.5, rss_mb=42.25, cpu_load_1m=0.75)

    def log(self, label: str) -> ResourceSample:
        self.logged.append(label)
        return self.sample(label)


class CountingPacing:
    def __init__(self) -> None:
        self.pauses = 0

    def pause(self) -> None:
        self.pauses += 1


@pytest.fixture
def monitor() -> RecordingMonitor:
    return RecordingMonitor()


@pytest.fixture
def pacing() -> CountingPacing:
    return CountingPacing()


@pytest.fixture
def generator() -> RecordGenerator:
    return RecordGenerator(seed=DEFAULT_SEED)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def make_config(data_dir: Path) -> Callable[..., RunConfig]:
    """
    Build a small, unpaced run config writing into the temporary data dir.
    """

    def _make(**overrides) -> RunConfig:
        values = {
            "total_records": 5,
            "batch_size": 2,
            "pacing_ms": 0,
            "progress_every": 2,
            "data_dir": data_dir,
            "seed": DEFAULT_SEED,
        }
        values.update(overrides)
        return RunConfig(**values)

    return _make


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """
    The CLI and logging tests reconfigure the root logger; put it back afterwards.
    """
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    for handler in root.handlers[:]:
        if handler not in before and type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """
    Settings are cached per process; tests that patch the environment need a fresh read.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
