"""
Utilities package for the user export job.

Exports shared helpers for logging and resource monitoring.
Keep this package lightweight and free of export-specific logic.
"""

from user_export.utils.logging import configure_logging, get_logger
from user_export.utils.monitor import ResourceMonitor, ResourceSample, StageStats, profile_stage

__all__ = [
    "configure_logging",
    "get_logger",
    "ResourceMonitor",
    "ResourceSample",
    "StageStats",
    "profile_stage",
]
