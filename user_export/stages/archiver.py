"""
Zip packaging of the export artifacts.

Each source file is streamed into its archive entry, so memory use does not
depend on file size. The archive is only reported once the zip directory has
been written and the destination closed.
"""

from __future__ import annotations

import time
import zipfile
from pathlib import Path
from typing import BinaryIO, Sequence, Tuple, Union

from user_export.errors import ArchiveError
from user_export.stages.abstract import StageResult
from user_export.utils.logging import get_logger
from user_export.utils.monitor import ResourceMonitor

log = get_logger(__name__)

ArchiveEntry = Tuple[Path, str]


class Archiver:
    """
    Bundle named files into a deflate-compressed zip archive.
    """

    name: str = "archive"
    description: str = "Streaming zip (deflate) of the NDJSON and XLSX artifacts."

    def __init__(
        self,
        monitor: ResourceMonitor,
        compression_level: int = 9,
    ) -> None:
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be between 0 and 9")
        self.monitor = monitor
        self.compression_level = compression_level

    def archive(
        self, entries: Sequence[ArchiveEntry], destination: Union[Path, BinaryIO]
    ) -> StageResult:
        """
        Write `entries` (source path, entry name) in order into `destination`.

        A path destination is replaced. A stream destination is flushed and
        closed before this returns, including when archiving fails.

        Raises
        ------
        ArchiveError
            If a source file is missing or unreadable, or the destination
            cannot be written.
        """
        try:
            for source, _ in entries:
                if not source.is_file():
                    raise ArchiveError(f"Archive source not found: {source}")

            start = time.perf_counter()
            try:
                with zipfile.ZipFile(
                    destination,
                    mode="w",
                    compression=zipfile.ZIP_DEFLATED,
                    compresslevel=self.compression_level,
                ) as bundle:
                    for source, entry_name in entries:
                        # ZipFile.write copies the file in small chunks, never whole.
                        bundle.write(source, arcname=entry_name)
                        log.debug("Archived entry", extra={"stage": self.name, "entry": entry_name})
                size = self._finish(destination)
            except OSError as exc:
                raise ArchiveError(f"Archiving to {destination!r} failed: {exc}") from exc
        finally:
            # Stream destinations are closed on every path.
            if not isinstance(destination, Path) and not destination.closed:
                destination.close()

        label = str(destination) if isinstance(destination, Path) else "<stream>"
        log.info(f"Zip created: {label} ({size} bytes)", extra={"stage": self.name, "path": label, "bytes": size})
        self.monitor.log("Completed Zipping")
        return StageResult(
            stage=self.name,
            rows=len(entries),
            path=label,
            bytes_written=size,
            duration_seconds=time.perf_counter() - start,
            extra={"entries": [entry_name for _, entry_name in entries]},
        )

    @staticmethod
    def _finish(destination: Union[Path, BinaryIO]) -> int:
        if isinstance(destination, Path):
            return destination.stat().st_size
        destination.flush()
        size = destination.tell()
        destination.close()
        return size


__all__ = ["ArchiveEntry", "Archiver"]
