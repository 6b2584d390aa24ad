"""
In-process job scheduler for the export job.

Replaces a process-wide task table with an explicit registry per scheduler
instance. Jobs run on one background worker thread, so callers (the HTTP
server, the CLI) never block on a run and runs never overlap.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from user_export.errors import UnknownJobError
from user_export.utils.logging import get_logger

log = get_logger(__name__)

JobFunc = Callable[[], Any]


@dataclass(frozen=True)
class JobStatus:
    """
    Last known state of a named job. Kept in memory only.
    """

    name: str
    state: str = "defined"
    runs: int = 0
    failures: int = 0
    last_error: Optional[str] = field(default=None)
    last_started_at: Optional[datetime] = field(default=None)
    last_finished_at: Optional[datetime] = field(default=None)


class JobScheduler:
    """
    Register named jobs and trigger them with `now(name)`.

    Example
    -------
        scheduler = JobScheduler()
        scheduler.define("generate-and-zip-users", runner.run)
        future = scheduler.now("generate-and-zip-users")
        report = future.result()
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, JobFunc] = {}
        self._status: Dict[str, JobStatus] = {}
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    def define(self, name: str, func: JobFunc) -> None:
        with self._lock:
            self._jobs[name] = func
            self._status.setdefault(name, JobStatus(name=name))
        log.info(f"[SCHEDULER] Defined job {name}", extra={"job": name})

    def jobs(self) -> list[str]:
        """List defined job names."""
        with self._lock:
            return sorted(self._jobs)

    def status(self, name: str) -> JobStatus:
        with self._lock:
            if name not in self._status:
                raise UnknownJobError(f"Unknown job '{name}'")
            return self._status[name]

    def now(self, name: str) -> Future:
        """
        Queue `name` for immediate execution on the worker thread.

        The returned future resolves to the job's return value or raises the
        job's exception.
        """
        with self._lock:
            if name not in self._jobs:
                available = ", ".join(sorted(self._jobs)) or "none"
                raise UnknownJobError(f"Unknown job '{name}'. Available: {available}")
            func = self._jobs[name]
            self._status[name] = replace(self._status[name], state="scheduled")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="export-job")
            executor = self._executor
        log.info(f"[SCHEDULER] Scheduled job {name} to run now", extra={"job": name})
        return executor.submit(self._execute, name, func)

    def _execute(self, name: str, func: JobFunc) -> Any:
        self._update(name, state="running", last_started_at=datetime.now(timezone.utc))
        try:
            result = func()
        except Exception as exc:
            log.error(f"[SCHEDULER] Job {name} failed: {exc}", extra={"job": name})
            with self._lock:
                current = self._status[name]
                self._status[name] = replace(
                    current,
                    state="failed",
                    runs=current.runs + 1,
                    failures=current.failures + 1,
                    last_error=str(exc),
                    last_finished_at=datetime.now(timezone.utc),
                )
            raise
        with self._lock:
            current = self._status[name]
            self._status[name] = replace(
                current,
                state="completed",
                runs=current.runs + 1,
                last_error=None,
                last_finished_at=datetime.now(timezone.utc),
            )
        log.info(f"[SCHEDULER] Job {name} completed", extra={"job": name})
        return result

    def _update(self, name: str, **changes: Any) -> None:
        with self._lock:
            self._status[name] = replace(self._status[name], **changes)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with `wait`, block until queued runs finish."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)


__all__ = ["JobFunc", "JobScheduler", "JobStatus"]
