"""
NDJSON to spreadsheet conversion.

Intent:
- Read the record stream lazily, one line at a time, exactly once.
- Fix the column schema from the first record; later records are projected
  onto it (missing keys become empty cells, extra keys are dropped).
- Commit each row to a write-only openpyxl workbook as soon as it is parsed.
- A malformed line aborts the conversion; only blank lines are skipped.
"""

from __future__ import annotations

import io
import json
import time
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from user_export.errors import RecordParseError
from user_export.stages.abstract import StageResult, TableSink
from user_export.utils.logging import get_logger
from user_export.utils.monitor import ResourceMonitor

log = get_logger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


def read_lines(source: Union[Path, BinaryIO]) -> Iterator[str]:
    """
    Yield the text lines of `source` without their terminators.

    Universal newline mode makes "\\n", "\\r\\n" and "\\r" equivalent. A path
    is opened and closed by the generator; a byte stream is wrapped and
    closed once exhausted.
    """
    if isinstance(source, Path):
        stream = source.open("r", encoding="utf-8", newline=None)
    else:
        stream = io.TextIOWrapper(source, encoding="utf-8", newline=None)
    with stream:
        for line in stream:
            yield line.rstrip("\n")


def _cell_value(value: Any) -> Any:
    if value is None or isinstance(value, _SCALAR_TYPES):
        return value
    return json.dumps(value, separators=(",", ":"))


class XlsxTableSink:
    """
    `TableSink` writing a single worksheet through openpyxl's write-only mode.

    Rows are streamed to a temporary part file by openpyxl and only zipped
    into the final workbook on `close()`.
    """

    def __init__(self, path: Path, sheet_title: str = "Users", column_width: float = 20) -> None:
        self.path = path
        self.column_width = column_width
        self._workbook = Workbook(write_only=True)
        self._sheet = self._workbook.create_sheet(title=sheet_title)
        self._columns_set = False
        self._closed = False

    def set_columns(self, headers: Sequence[str]) -> None:
        if self._columns_set:
            raise RuntimeError("columns are already set")
        # Dimensions must be declared before the first row in write-only mode.
        for index in range(1, len(headers) + 1):
            self._sheet.column_dimensions[get_column_letter(index)].width = self.column_width
        self._sheet.append([self._cell(header) for header in headers])
        self._columns_set = True

    def append(self, values: Sequence[Any]) -> None:
        self._sheet.append([self._cell(value) for value in values])

    def _cell(self, value: Any) -> Any:
        value = _cell_value(value)
        if not isinstance(value, str):
            return value
        # Control characters other than tab, LF and CR are not valid in XML.
        value = ILLEGAL_CHARACTERS_RE.sub("", value)
        if not value.startswith("="):
            return value
        # openpyxl stores "=..." strings as formulas; keep them as literal text.
        cell = WriteOnlyCell(self._sheet, value=value)
        cell.data_type = "s"
        return cell

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._workbook.save(self.path)


class LineStreamToTableConverter:
    """
    Convert a line-delimited JSON stream into rows of a `TableSink`.
    """

    name: str = "convert"
    description: str = "Streaming NDJSON to XLSX with first-record schema."

    def __init__(self, monitor: ResourceMonitor, progress_every: int = 100_000) -> None:
        if progress_every <= 0:
            raise ValueError("progress_every must be a positive integer")
        self.monitor = monitor
        self.progress_every = progress_every

    def convert(self, lines: Iterable[str], sink: TableSink) -> StageResult:
        """
        Consume `lines` once and write one row per non-blank line.

        The sink is closed on success and on failure.

        Raises
        ------
        RecordParseError
            If a non-blank line is not a JSON object.
        """
        columns: Optional[List[str]] = None
        rows = 0
        start = time.perf_counter()
        try:
            for line_number, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                record = self._parse(line, line_number)

                if columns is None:
                    columns = list(record.keys())
                    sink.set_columns(columns)
                    log.debug("Column schema fixed", extra={"stage": self.name, "columns": columns})

                sink.append([record.get(key) for key in columns])
                rows += 1

                if rows % self.progress_every == 0:
                    log.info(f"Written table rows: {rows}", extra={"stage": self.name, "rows": rows})
                    self.monitor.log(f"Table Rows: {rows}")
        finally:
            sink.close()

        duration = time.perf_counter() - start
        log.info("Finished converting to table", extra={"stage": self.name, "rows": rows})
        self.monitor.log("Completed table writing")
        return StageResult(
            stage=self.name,
            rows=rows,
            checkpoints=rows // self.progress_every,
            duration_seconds=duration,
            throughput_rows_per_sec=rows / duration if duration > 0 else 0.0,
            extra={"columns": columns or []},
        )

    def convert_file(
        self, source: Path, destination: Path, sheet_title: str = "Users"
    ) -> StageResult:
        """
        Convert the NDJSON file at `source` into an XLSX workbook at `destination`.
        """
        result = self.convert(read_lines(source), XlsxTableSink(destination, sheet_title=sheet_title))
        result["path"] = str(destination)
        result["bytes_written"] = destination.stat().st_size
        return result

    @staticmethod
    def _parse(line: str, line_number: int) -> dict:
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise RecordParseError(line_number, exc.msg) from exc
        if not isinstance(record, dict):
            raise RecordParseError(line_number, f"expected a JSON object, got {type(record).__name__}")
        return record


__all__ = ["LineStreamToTableConverter", "XlsxTableSink", "read_lines"]
