"""
Job runner for the three-stage user export.

Usage (example from CLI):
    from user_export.config import get_settings
    from user_export.orchestrator import PipelineJobRunner, RunConfig

    runner = PipelineJobRunner(RunConfig.from_settings(get_settings()))
    report = runner.run()
    print(report["state"], [stage["rows"] for stage in report["stages"]])

Artifacts are written to `data/` by default and replaced on every run:
- `data/users_stream.ndjson` (generated records, one JSON object per line)
- `data/users_stream.xlsx` (the same records as a spreadsheet)
- `data/users_export.zip` (both files, deflate level 9)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, TypedDict

from user_export.config import Settings
from user_export.errors import JobAlreadyRunningError, StageFailedError
from user_export.stages.abstract import StageResult
from user_export.stages.archiver import Archiver
from user_export.stages.generator import RecordGenerator
from user_export.stages.pacing import PacingPolicy, pacing_from_ms
from user_export.stages.record_writer import StreamingRecordWriter
from user_export.stages.table_converter import LineStreamToTableConverter
from user_export.utils.logging import get_logger
from user_export.utils.monitor import ResourceMonitor, StageStats, profile_stage

log = get_logger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    CONVERTING = "converting"
    ARCHIVING = "archiving"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunConfig:
    """
    Everything one pipeline run needs; stages never consult global settings.
    """

    total_records: int = 1_000_000
    batch_size: int = 100_000
    pacing_ms: int = 500
    progress_every: int = 100_000
    data_dir: Path = Path("data")
    ndjson_filename: str = "users_stream.ndjson"
    xlsx_filename: str = "users_stream.xlsx"
    zip_filename: str = "users_export.zip"
    sheet_title: str = "Users"
    compression_level: int = 9
    job_name: str = "generate-and-zip-users"
    cleanup_on_failure: bool = False
    overlap_policy: str = "reject"
    seed: Optional[int] = None
    locale: str = "en_US"

    def __post_init__(self) -> None:
        if self.total_records < 0:
            raise ValueError("total_records must be >= 0")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        if self.pacing_ms < 0:
            raise ValueError("pacing_ms must be >= 0")
        if not 0 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 0 and 9")
        if self.overlap_policy not in ("reject", "queue"):
            raise ValueError(f"Unknown overlap policy '{self.overlap_policy}'. Available: reject, queue")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "RunConfig":
        """Build a run config from settings; `None` overrides are ignored."""
        config = cls(
            total_records=settings.export_total_records,
            batch_size=settings.export_batch_size,
            pacing_ms=settings.export_pacing_ms,
            progress_every=settings.convert_progress_every,
            data_dir=Path(settings.data_dir),
            ndjson_filename=settings.ndjson_filename,
            xlsx_filename=settings.xlsx_filename,
            zip_filename=settings.zip_filename,
            sheet_title=settings.xlsx_sheet_title,
            compression_level=settings.zip_compression_level,
            job_name=settings.job_name,
            cleanup_on_failure=settings.cleanup_on_failure,
            overlap_policy=settings.overlap_policy,
            seed=settings.faker_seed,
            locale=settings.faker_locale,
        )
        return replace(config, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def ndjson_path(self) -> Path:
        return self.data_dir / self.ndjson_filename

    @property
    def xlsx_path(self) -> Path:
        return self.data_dir / self.xlsx_filename

    @property
    def zip_path(self) -> Path:
        return self.data_dir / self.zip_filename

    def artifact_paths(self) -> List[Path]:
        return [self.ndjson_path, self.xlsx_path, self.zip_path]


class JobReport(TypedDict):
    job: str
    state: str
    started_at: str
    finished_at: str
    duration_seconds: float
    stages: List[StageResult]


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _merge_stage(result: StageResult, stats: StageStats) -> StageResult:
    """Overlay profiler timing onto a stage result, rounding floats for readability."""
    merged = StageResult(**result)
    merged["duration_seconds"] = _round_float(stats.duration_seconds)
    rows = merged.get("rows", 0)
    merged["throughput_rows_per_sec"] = (
        _round_float(rows / stats.duration_seconds) if stats.duration_seconds else 0.0
    )
    extra = dict(merged.get("extra", {}))
    extra["rss_start_mb"] = stats.rss_start_mb
    extra["rss_end_mb"] = stats.rss_end_mb
    merged["extra"] = extra
    return merged


class PipelineJobRunner:
    """
    Run generate -> convert -> archive, strictly in that order.

    State machine: IDLE -> GENERATING -> CONVERTING -> ARCHIVING -> COMPLETED,
    or -> FAILED from any stage. Overlapping `run()` calls are rejected with
    `JobAlreadyRunningError` (overlap_policy="reject") or wait for the
    in-flight run to finish (overlap_policy="queue").
    """

    def __init__(
        self,
        config: RunConfig,
        monitor: Optional[ResourceMonitor] = None,
        pacing: Optional[PacingPolicy] = None,
        generator: Optional[RecordGenerator] = None,
    ) -> None:
        self.config = config
        self.monitor = monitor or ResourceMonitor()
        self.pacing = pacing if pacing is not None else pacing_from_ms(config.pacing_ms)
        self.generator = generator or RecordGenerator(seed=config.seed, locale=config.locale)
        self.transitions: List[JobState] = [JobState.IDLE]
        self._state = JobState.IDLE
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self.config.job_name

    @property
    def state(self) -> JobState:
        return self._state

    def run(self) -> JobReport:
        """
        Execute one job run.

        Raises
        ------
        JobAlreadyRunningError
            If another run is in flight and the overlap policy is "reject".
        StageFailedError
            If any stage fails; the original error is chained as `__cause__`.
        """
        acquired = self._lock.acquire(blocking=self.config.overlap_policy == "queue")
        if not acquired:
            log.warning(f"[JOB REJECTED] {self.name} is already running", extra={"job": self.name})
            raise JobAlreadyRunningError(f"Job '{self.name}' is already running")
        try:
            return self._run_once()
        finally:
            self._lock.release()

    def _transition(self, state: JobState) -> None:
        log.debug(f"[STATE] {self._state.value} -> {state.value}", extra={"job": self.name})
        self._state = state
        self.transitions.append(state)

    def _stages(self) -> List[tuple[JobState, str, Callable[[], StageResult]]]:
        config = self.config
        writer = StreamingRecordWriter(
            self.generator, self.monitor, batch_size=config.batch_size, pacing=self.pacing
        )
        converter = LineStreamToTableConverter(self.monitor, progress_every=config.progress_every)
        archiver = Archiver(self.monitor, compression_level=config.compression_level)
        entries = [
            (config.ndjson_path, config.ndjson_filename),
            (config.xlsx_path, config.xlsx_filename),
        ]
        return [
            (
                JobState.GENERATING,
                writer.name,
                lambda: writer.write_to_path(config.total_records, config.ndjson_path),
            ),
            (
                JobState.CONVERTING,
                converter.name,
                lambda: converter.convert_file(
                    config.ndjson_path, config.xlsx_path, sheet_title=config.sheet_title
                ),
            ),
            (
                JobState.ARCHIVING,
                archiver.name,
                lambda: archiver.archive(entries, config.zip_path),
            ),
        ]

    def _run_once(self) -> JobReport:
        config = self.config
        self._state = JobState.IDLE
        self.transitions = [JobState.IDLE]
        started_at = datetime.now(timezone.utc)

        log.info(f"[JOB START] {self.name}", extra={"job": self.name, "records": config.total_records})
        self.monitor.log("Job Start")

        results: List[StageResult] = []
        stage_name = "setup"
        try:
            config.data_dir.mkdir(parents=True, exist_ok=True)
            for state, stage_name, execute in self._stages():
                self._transition(state)
                log.info(f"[STAGE START] {stage_name}", extra={"job": self.name, "stage": stage_name})
                with profile_stage(stage_name, self.monitor) as stats:
                    result = execute()
                results.append(_merge_stage(result, stats))
                log.info(
                    f"[STAGE COMPLETE] {stage_name}",
                    extra={"job": self.name, "stage": stage_name, "rows": result.get("rows")},
                )
        except Exception as exc:  # noqa: BLE001 - every stage error fails the job
            self._transition(JobState.FAILED)
            log.exception(f"[JOB FAILED] {self.name}", extra={"job": self.name, "stage": stage_name})
            if config.cleanup_on_failure:
                self._remove_artifacts()
            raise StageFailedError(stage_name, exc) from exc

        self._transition(JobState.COMPLETED)
        finished_at = datetime.now(timezone.utc)
        log.info(f"[JOB COMPLETE] {self.name}", extra={"job": self.name})
        self.monitor.log("Job End")

        return JobReport(
            job=self.name,
            state=self._state.value,
            started_at=started_at.isoformat(),
            finished_at=finished_at.isoformat(),
            duration_seconds=_round_float((finished_at - started_at).total_seconds()),
            stages=results,
        )

    def _remove_artifacts(self) -> None:
        for path in self.config.artifact_paths():
            if path.exists():
                path.unlink()
                log.info("Removed partial artifact", extra={"job": self.name, "path": str(path)})


__all__ = [
    "JobReport",
    "JobState",
    "PipelineJobRunner",
    "RunConfig",
]
