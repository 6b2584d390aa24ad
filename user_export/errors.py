"""
Exception types raised by the export pipeline.

Every stage is fatal-on-error: stages raise, the runner wraps the failure in
`StageFailedError` (keeping the original as `__cause__`) and re-raises it to
whoever triggered the job.
"""

from __future__ import annotations

from typing import Optional


class ExportError(Exception):
    """Base class for all export pipeline errors."""


class RecordParseError(ExportError):
    """A non-blank line of the record stream is not a JSON object."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Malformed record on line {line_number}: {reason}")


class ArchiveError(ExportError):
    """Archiving could not read a source file or write the destination."""


class StageFailedError(ExportError):
    """A pipeline stage failed; the job moved to FAILED."""

    def __init__(self, stage: str, cause: Optional[BaseException] = None) -> None:
        self.stage = stage
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Stage '{stage}' failed{detail}")


class JobAlreadyRunningError(ExportError):
    """A run was requested while another run of the same runner is in flight."""


class UnknownJobError(ExportError, KeyError):
    """The scheduler was asked to run a job name that was never defined."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown job"


__all__ = [
    "ArchiveError",
    "ExportError",
    "JobAlreadyRunningError",
    "RecordParseError",
    "StageFailedError",
    "UnknownJobError",
]
