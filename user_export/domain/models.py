"""
Domain models for the user export job.

Defines the synthetic user written to the record stream, one per line. The
serialized key order (camelCase aliases) is the column order of the exported
spreadsheet.
"""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class SyntheticUserRecord(BaseModel):
    """
    A fake user account. Created per generator call, written once, discarded.
    """

    user_id: str = Field(..., alias="userId", min_length=1, description="Opaque unique id (UUID4).")
    username: str = Field(..., min_length=1, description="Login name.")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Email address.")
    avatar: str = Field(..., pattern=r"^https?://\S+$", description="Avatar image URI.")
    password: str = Field(..., min_length=1, description="Plaintext placeholder password.")
    birthdate: date = Field(..., description="Date of birth.")
    registered_at: datetime = Field(..., alias="registeredAt", description="Registration time (UTC).")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    def to_json_line(self) -> str:
        """Serialize as a single-line JSON object keyed by the wire aliases."""
        return self.model_dump_json(by_alias=True)


__all__ = ["SyntheticUserRecord"]
