"""
Infrastructure package for the user export job.

Holds the job trigger (scheduler). Keep this layer focused on execution and
lifecycle, decoupled from stage logic.
"""

from user_export.infrastructure.scheduler import JobScheduler, JobStatus

__all__ = [
    "JobScheduler",
    "JobStatus",
]
