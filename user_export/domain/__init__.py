"""
Domain package for the user export job.

Exports the record model shared by the generator and the record writer.
Keep this package focused on data definitions and validation concerns.
"""

from user_export.domain.models import SyntheticUserRecord

__all__ = [
    "SyntheticUserRecord",
]
