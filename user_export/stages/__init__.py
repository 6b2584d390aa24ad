"""
Stages package for the user export job.

Re-exports the stage contracts and the concrete stages so downstream code can
import from `user_export.stages` directly.
"""

from user_export.stages.abstract import StageResult, TableSink
from user_export.stages.archiver import ArchiveEntry, Archiver
from user_export.stages.generator import RecordGenerator
from user_export.stages.pacing import FixedPacing, NoPacing, PacingPolicy, pacing_from_ms
from user_export.stages.record_writer import StreamingRecordWriter
from user_export.stages.table_converter import (
    LineStreamToTableConverter,
    XlsxTableSink,
    read_lines,
)

__all__ = [
    # Contracts
    "StageResult",
    "TableSink",
    "PacingPolicy",
    # Concrete stages
    "ArchiveEntry",
    "Archiver",
    "FixedPacing",
    "LineStreamToTableConverter",
    "NoPacing",
    "RecordGenerator",
    "StreamingRecordWriter",
    "XlsxTableSink",
    "pacing_from_ms",
    "read_lines",
]
