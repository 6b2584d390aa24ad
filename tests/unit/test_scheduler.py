from __future__ import annotations

import threading

import pytest

from user_export.errors import UnknownJobError
from user_export.infrastructure.scheduler import JobScheduler

WAIT_TIMEOUT_SECONDS = 5


@pytest.fixture
def scheduler():
    scheduler = JobScheduler()
    yield scheduler
    scheduler.shutdown(wait=True)


def test_now_runs_defined_job_in_background(scheduler: JobScheduler) -> None:
    caller = threading.current_thread()
    seen: list = []
    scheduler.define("export", lambda: seen.append(threading.current_thread()) or "done")

    result = scheduler.now("export").result(timeout=WAIT_TIMEOUT_SECONDS)

    assert result == "done"
    assert seen and seen[0] is not caller
    status = scheduler.status("export")
    assert status.state == "completed"
    assert status.runs == 1
    assert status.last_finished_at is not None


def test_failed_job_is_recorded_and_raised(scheduler: JobScheduler) -> None:
    def boom() -> None:
        raise RuntimeError("stage exploded")

    scheduler.define("export", boom)

    with pytest.raises(RuntimeError, match="stage exploded"):
        scheduler.now("export").result(timeout=WAIT_TIMEOUT_SECONDS)

    status = scheduler.status("export")
    assert status.state == "failed"
    assert status.failures == 1
    assert status.last_error == "stage exploded"


def test_runs_are_serialized(scheduler: JobScheduler) -> None:
    active = 0
    peak = 0
    lock = threading.Lock()

    def job() -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        threading.Event().wait(0.01)
        with lock:
            active -= 1

    scheduler.define("export", job)
    futures = [scheduler.now("export") for _ in range(3)]
    for future in futures:
        future.result(timeout=WAIT_TIMEOUT_SECONDS)

    assert peak == 1
    assert scheduler.status("export").runs == 3


def test_unknown_job_is_rejected(scheduler: JobScheduler) -> None:
    scheduler.define("export", lambda: None)

    with pytest.raises(UnknownJobError, match="Available: export"):
        scheduler.now("missing")
    with pytest.raises(UnknownJobError):
        scheduler.status("missing")


def test_jobs_lists_defined_names(scheduler: JobScheduler) -> None:
    scheduler.define("b", lambda: None)
    scheduler.define("a", lambda: None)

    assert scheduler.jobs() == ["a", "b"]
