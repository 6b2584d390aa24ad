from __future__ import annotations

from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.table import Table

_MB = 1024 * 1024


def _format_size(size: Optional[int]) -> str:
    if size is None:
        return "N/A"
    return f"{size / _MB:.2f}"


def print_report(report: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render a finished job run as a rich table, one row per stage.
    """
    console = console or Console()
    stages = report.get("stages") or []

    if not stages:
        console.print("[yellow]No stage results to display.[/yellow]")
        return

    title = f"{report.get('job', 'job')} [{report.get('state', 'unknown')}]"
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"Total {report.get('duration_seconds', 0.0):.1f}s",
    )

    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Checkpoints", justify="right", style="blue")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Size (MB)", justify="right", style="yellow")
    table.add_column("Path", style="dim")

    for stage in stages:
        table.add_row(
            stage.get("stage", "unknown"),
            f"{stage.get('rows', 0):,}",
            str(stage.get("checkpoints", 0)),
            f"{stage.get('duration_seconds', 0.0):.1f}",
            f"{stage.get('throughput_rows_per_sec', 0.0):,.2f}",
            _format_size(stage.get("bytes_written")),
            stage.get("path") or "",
        )

    console.print(table)


__all__ = ["print_report"]
