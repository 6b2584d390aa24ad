"""
Pacing between record batches.

The pause exists to cap disk and CPU pressure during generation; it has no
effect on the produced data. Tests use `NoPacing`.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class PacingPolicy(Protocol):
    def pause(self) -> None:
        ...


class NoPacing:
    """Never waits."""

    def pause(self) -> None:
        return None


class FixedPacing:
    """
    Block the calling thread for a fixed interval on every `pause()`.
    """

    def __init__(self, interval_seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.interval_seconds = interval_seconds
        self._sleep = sleep

    def pause(self) -> None:
        self._sleep(self.interval_seconds)


def pacing_from_ms(pacing_ms: int) -> PacingPolicy:
    """Build the pacing policy for a configured interval in milliseconds."""
    if pacing_ms <= 0:
        return NoPacing()
    return FixedPacing(pacing_ms / 1000.0)


__all__ = ["FixedPacing", "NoPacing", "PacingPolicy", "pacing_from_ms"]
