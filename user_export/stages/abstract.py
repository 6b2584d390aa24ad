"""
Stage result contract and sink interfaces for the export pipeline.

Each stage returns a `StageResult` TypedDict so the runner and the reporter
can treat generation, conversion and archiving uniformly. `TableSink` is the
seam between the line-stream converter and a concrete spreadsheet writer.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence, TypedDict, runtime_checkable


class StageResult(TypedDict, total=False):
    """
    Metrics returned by a stage.

    Fields are optional; the reporter tolerates missing values.
    """

    stage: str
    rows: int
    path: Optional[str]
    bytes_written: Optional[int]
    checkpoints: int
    duration_seconds: float
    throughput_rows_per_sec: float
    notes: Optional[str]
    extra: Dict[str, Any]


@runtime_checkable
class TableSink(Protocol):
    """
    A tabular writer that commits rows incrementally.

    `set_columns` is called once, before the first `append`. `close` must
    leave a valid, readable file behind, even if no rows were written.
    """

    def set_columns(self, headers: Sequence[str]) -> None:
        ...

    def append(self, values: Sequence[Any]) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "StageResult",
    "TableSink",
]
