"""
Acknowledgement endpoint for the background export job.

`GET /` always answers with the same plain-text acknowledgement; job
outcomes are only visible in the logs and the scheduler status.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from user_export.infrastructure.scheduler import JobScheduler
from user_export.utils.logging import get_logger

log = get_logger(__name__)

ACKNOWLEDGEMENT = "Server is running. Job is processing in background."


def create_app(scheduler: Optional[JobScheduler] = None, job_name: Optional[str] = None) -> FastAPI:
    """
    Build the FastAPI app.

    With a scheduler and job name, the job is triggered once at startup and
    the scheduler is shut down (waiting for the run) when the app stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if scheduler is not None and job_name is not None:
            scheduler.now(job_name)
            log.info(f"[SERVER] Triggered {job_name} at startup", extra={"job": job_name})
        yield
        if scheduler is not None:
            scheduler.shutdown(wait=True)

    app = FastAPI(title="User Export", lifespan=lifespan)

    @app.get("/", response_class=PlainTextResponse)
    def acknowledge() -> str:
        return ACKNOWLEDGEMENT

    return app


__all__ = ["ACKNOWLEDGEMENT", "create_app"]
