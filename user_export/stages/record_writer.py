"""
Line-delimited JSON writer for generated users.

Intent:
- Stream records straight to disk; nothing is retained after its line is written.
- Every `batch_size` records: log progress, sample resources, then pause.
- A trailing partial batch is written but does not trigger a checkpoint.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import BinaryIO, Optional

from user_export.stages.abstract import StageResult
from user_export.stages.generator import RecordGenerator
from user_export.stages.pacing import NoPacing, PacingPolicy
from user_export.utils.logging import get_logger
from user_export.utils.monitor import ResourceMonitor

log = get_logger(__name__)


class StreamingRecordWriter:
    """
    Write `total_count` generated records to a byte sink, one JSON object per line.
    """

    name: str = "generate"
    description: str = "Faker users serialized as NDJSON in paced batches."

    def __init__(
        self,
        generator: RecordGenerator,
        monitor: ResourceMonitor,
        batch_size: int = 100_000,
        pacing: Optional[PacingPolicy] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        self.generator = generator
        self.monitor = monitor
        self.batch_size = batch_size
        self.pacing = pacing or NoPacing()

    def write(self, total_count: int, sink: BinaryIO) -> StageResult:
        """
        Generate and write records, then flush and close `sink`.

        The sink is closed whether or not writing succeeds; write errors
        propagate unchanged.
        """
        if total_count < 0:
            raise ValueError("total_count must be >= 0")

        written = 0
        bytes_written = 0
        checkpoints = 0
        start = time.perf_counter()
        try:
            for _ in range(total_count):
                line = self.generator.generate().to_json_line().encode("utf-8") + b"\n"
                sink.write(line)
                written += 1
                bytes_written += len(line)

                if written % self.batch_size == 0:
                    checkpoints += 1
                    self._checkpoint(checkpoints)
            sink.flush()
        finally:
            sink.close()

        duration = time.perf_counter() - start
        log.info(
            "Finished writing record stream",
            extra={"stage": self.name, "rows": written, "bytes": bytes_written},
        )
        self.monitor.log("Completed NDJSON writing")
        return StageResult(
            stage=self.name,
            rows=written,
            bytes_written=bytes_written,
            checkpoints=checkpoints,
            duration_seconds=duration,
            throughput_rows_per_sec=written / duration if duration > 0 else 0.0,
            notes=f"batch_size={self.batch_size}",
        )

    def write_to_path(self, total_count: int, path: Path) -> StageResult:
        """
        Write to `path`, replacing any previous file.
        """
        result = self.write(total_count, path.open("wb"))
        result["path"] = str(path)
        return result

    def _checkpoint(self, batch_index: int) -> None:
        log.info(f"Wrote batch: {batch_index}", extra={"stage": self.name, "batch": batch_index})
        self.monitor.log(f"After writing batch {batch_index}")
        self.pacing.pause()


__all__ = ["StreamingRecordWriter"]
