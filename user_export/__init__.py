"""
User Export - scheduled synthetic-data export job.

Generates a large synthetic user dataset and exports it in three streaming
stages, each under bounded memory:

- Faker records written as line-delimited JSON in paced batches
- Line-by-line conversion into a write-only XLSX workbook
- Streaming zip packaging of both artifacts

A `PipelineJobRunner` runs the stages once per trigger; a `JobScheduler`
triggers it in the background while a small FastAPI app acknowledges requests.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from user_export.config import Settings, get_settings
from user_export.errors import (
    ArchiveError,
    ExportError,
    JobAlreadyRunningError,
    RecordParseError,
    StageFailedError,
)
from user_export.orchestrator import JobReport, JobState, PipelineJobRunner, RunConfig
from user_export.stages.abstract import StageResult, TableSink
from user_export.utils.logging import configure_logging, get_logger
from user_export.utils.monitor import ResourceMonitor, ResourceSample

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Orchestration
    "JobReport",
    "JobState",
    "PipelineJobRunner",
    "RunConfig",
    # Stage contracts
    "StageResult",
    "TableSink",
    # Errors
    "ArchiveError",
    "ExportError",
    "JobAlreadyRunningError",
    "RecordParseError",
    "StageFailedError",
    # Logging
    "configure_logging",
    "get_logger",
    # Monitoring
    "ResourceMonitor",
    "ResourceSample",
]
