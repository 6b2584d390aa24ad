"""
Configuration settings for the user export job.

Uses Pydantic Settings to load environment variables for the export volume,
pacing, artifact locations, logging and the acknowledgement server. Stages
never read settings directly; the runner receives a `RunConfig` built from
these values.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

    # Export volume and pacing
    export_total_records: int = Field(1_000_000, ge=0, alias="EXPORT_TOTAL_RECORDS")
    export_batch_size: int = Field(100_000, gt=0, alias="EXPORT_BATCH_SIZE")
    export_pacing_ms: int = Field(500, ge=0, alias="EXPORT_PACING_MS")
    convert_progress_every: int = Field(100_000, gt=0, alias="CONVERT_PROGRESS_EVERY")

    # Artifacts
    data_dir: Path = Field(Path("data"), alias="EXPORT_DATA_DIR")
    ndjson_filename: str = Field("users_stream.ndjson", alias="NDJSON_FILENAME")
    xlsx_filename: str = Field("users_stream.xlsx", alias="XLSX_FILENAME")
    zip_filename: str = Field("users_export.zip", alias="ZIP_FILENAME")
    xlsx_sheet_title: str = Field("Users", alias="XLSX_SHEET_TITLE")
    zip_compression_level: int = Field(9, ge=0, le=9, alias="ZIP_COMPRESSION_LEVEL")

    # Job lifecycle
    job_name: str = Field("generate-and-zip-users", alias="JOB_NAME")
    cleanup_on_failure: bool = Field(False, alias="CLEANUP_ON_FAILURE")
    overlap_policy: Literal["reject", "queue"] = Field("reject", alias="OVERLAP_POLICY")

    # Record generation
    faker_seed: Optional[int] = Field(None, alias="FAKER_SEED")
    faker_locale: str = Field("en_US", alias="FAKER_LOCALE")

    # Acknowledgement server
    server_host: str = Field("127.0.0.1", alias="SERVER_HOST")
    server_port: int = Field(3000, alias="SERVER_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
