from __future__ import annotations

import json
import threading
import zipfile
from pathlib import Path

import pytest
from openpyxl import load_workbook

from user_export.config import Settings
from user_export.errors import JobAlreadyRunningError, RecordParseError, StageFailedError
from user_export.orchestrator import JobState, PipelineJobRunner, RunConfig

TOTAL_RECORDS = 5
BATCH_SIZE = 2
EXPECTED_CHECKPOINTS = 2
WAIT_TIMEOUT_SECONDS = 5


class _BlockingPacing:
    """Holds the first run inside its first checkpoint until released."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()

    def pause(self) -> None:
        self.entered.set()
        self.release.wait(WAIT_TIMEOUT_SECONDS)


def test_end_to_end_five_records_batches_of_two(make_config, monitor, pacing) -> None:
    config = make_config()
    runner = PipelineJobRunner(config, monitor=monitor, pacing=pacing)

    report = runner.run()

    lines = config.ndjson_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == TOTAL_RECORDS
    assert pacing.pauses == EXPECTED_CHECKPOINTS

    workbook = load_workbook(config.xlsx_path, read_only=True)
    rows = list(workbook["Users"].iter_rows(values_only=True))
    workbook.close()
    assert len(rows) == TOTAL_RECORDS + 1
    assert list(rows[0]) == list(json.loads(lines[0]).keys())

    with zipfile.ZipFile(config.zip_path) as bundle:
        assert bundle.namelist() == [config.ndjson_filename, config.xlsx_filename]

    assert report["state"] == "completed"
    assert [stage["stage"] for stage in report["stages"]] == ["generate", "convert", "archive"]
    assert report["stages"][0]["checkpoints"] == EXPECTED_CHECKPOINTS
    assert monitor.logged[0] == "Job Start"
    assert monitor.logged[-1] == "Job End"


def test_states_advance_strictly_in_order(make_config, monitor, pacing) -> None:
    runner = PipelineJobRunner(make_config(), monitor=monitor, pacing=pacing)
    assert runner.state is JobState.IDLE

    runner.run()

    assert runner.transitions == [
        JobState.IDLE,
        JobState.GENERATING,
        JobState.CONVERTING,
        JobState.ARCHIVING,
        JobState.COMPLETED,
    ]
    assert runner.state is JobState.COMPLETED


def test_data_dir_is_created(make_config, monitor, tmp_path: Path) -> None:
    config = make_config(data_dir=tmp_path / "a" / "b")

    PipelineJobRunner(config, monitor=monitor).run()

    assert all(path.is_file() for path in config.artifact_paths())


def test_second_run_overwrites_artifacts(make_config, monitor) -> None:
    config = make_config(seed=None)
    runner = PipelineJobRunner(config, monitor=monitor)

    runner.run()
    first = config.ndjson_path.read_text(encoding="utf-8")
    runner.run()
    second = config.ndjson_path.read_text(encoding="utf-8")

    assert first != second
    assert len(second.splitlines()) == TOTAL_RECORDS


def test_stage_failure_moves_to_failed_and_surfaces_cause(make_config, monitor, monkeypatch) -> None:
    config = make_config()
    runner = PipelineJobRunner(config, monitor=monitor)

    def corrupt_then_convert(self, source, destination, sheet_title="Users"):
        source.write_text('{"ok": 1}\nnot json\n', encoding="utf-8")
        return original(self, source, destination, sheet_title=sheet_title)

    from user_export.stages.table_converter import LineStreamToTableConverter

    original = LineStreamToTableConverter.convert_file
    monkeypatch.setattr(LineStreamToTableConverter, "convert_file", corrupt_then_convert)

    with pytest.raises(StageFailedError) as excinfo:
        runner.run()

    assert excinfo.value.stage == "convert"
    assert isinstance(excinfo.value.__cause__, RecordParseError)
    assert runner.state is JobState.FAILED
    assert runner.transitions[-2:] == [JobState.CONVERTING, JobState.FAILED]
    assert not config.zip_path.exists()
    assert config.ndjson_path.exists()


def test_cleanup_policy_removes_partial_artifacts(make_config, monitor, monkeypatch) -> None:
    config = make_config(cleanup_on_failure=True)
    runner = PipelineJobRunner(config, monitor=monitor)

    from user_export.stages.archiver import Archiver

    def fail_archive(self, entries, destination):
        raise OSError("destination unavailable")

    monkeypatch.setattr(Archiver, "archive", fail_archive)

    with pytest.raises(StageFailedError) as excinfo:
        runner.run()

    assert excinfo.value.stage == "archive"
    assert not any(path.exists() for path in config.artifact_paths())


def test_overlapping_run_is_rejected(make_config, monitor) -> None:
    pacing = _BlockingPacing()
    runner = PipelineJobRunner(make_config(), monitor=monitor, pacing=pacing)
    outcome: dict = {}

    worker = threading.Thread(target=lambda: outcome.setdefault("report", runner.run()))
    worker.start()
    try:
        assert pacing.entered.wait(WAIT_TIMEOUT_SECONDS)
        with pytest.raises(JobAlreadyRunningError):
            runner.run()
    finally:
        pacing.release.set()
        worker.join(WAIT_TIMEOUT_SECONDS)

    assert outcome["report"]["state"] == "completed"


def test_overlapping_run_waits_under_queue_policy(make_config, monitor) -> None:
    pacing = _BlockingPacing()
    runner = PipelineJobRunner(make_config(overlap_policy="queue"), monitor=monitor, pacing=pacing)
    reports: list = []

    first = threading.Thread(target=lambda: reports.append(runner.run()))
    first.start()
    assert pacing.entered.wait(WAIT_TIMEOUT_SECONDS)
    second = threading.Thread(target=lambda: reports.append(runner.run()))
    second.start()
    pacing.release.set()
    first.join(WAIT_TIMEOUT_SECONDS)
    second.join(WAIT_TIMEOUT_SECONDS)

    assert [report["state"] for report in reports] == ["completed", "completed"]


def test_run_config_from_settings_applies_overrides(tmp_path: Path) -> None:
    settings = Settings(export_total_records=10, export_batch_size=3, export_pacing_ms=0)

    config = RunConfig.from_settings(settings, total_records=7, data_dir=tmp_path, seed=None)

    assert config.total_records == 7
    assert config.batch_size == 3
    assert config.data_dir == tmp_path
    assert config.zip_path == tmp_path / "users_export.zip"


@pytest.mark.parametrize(
    "overrides",
    [{"total_records": -1}, {"batch_size": 0}, {"pacing_ms": -5}, {"overlap_policy": "drop"}],
)
def test_run_config_rejects_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValueError):
        RunConfig(**overrides)
