from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from user_export.config import get_settings
from user_export.errors import ExportError
from user_export.infrastructure.scheduler import JobScheduler
from user_export.orchestrator import PipelineJobRunner, RunConfig
from user_export.reporter import print_report
from user_export.server import create_app
from user_export.utils.logging import configure_logging

app = typer.Typer(help="Synthetic user export CLI (NDJSON -> XLSX -> ZIP).")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    config = RunConfig.from_settings(settings)
    typer.echo(
        f"job={config.job_name} | records={config.total_records} batch={config.batch_size} "
        f"pacing_ms={config.pacing_ms} | data_dir={config.data_dir} "
        f"files={config.ndjson_filename},{config.xlsx_filename},{config.zip_filename} | "
        f"overlap={config.overlap_policy} cleanup_on_failure={config.cleanup_on_failure}"
    )


@app.command()
def run(
    records: Optional[int] = typer.Option(
        None,
        "--records",
        "-r",
        min=0,
        help="Override number of records to generate (default from settings).",
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size",
        "-b",
        min=1,
        help="Records per checkpoint batch.",
    ),
    pacing_ms: Optional[int] = typer.Option(
        None,
        "--pacing-ms",
        min=0,
        help="Pause after each batch in milliseconds (0 disables pacing).",
    ),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory for the NDJSON, XLSX and ZIP artifacts.",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Deterministic Faker seed.",
    ),
) -> None:
    """
    Run the export pipeline once in the foreground and print a summary.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)
    config = RunConfig.from_settings(
        settings,
        total_records=records,
        batch_size=batch_size,
        pacing_ms=pacing_ms,
        data_dir=data_dir,
        seed=seed,
    )
    typer.echo(
        f"Running '{config.job_name}' for records={config.total_records} "
        f"(batch={config.batch_size}, pacing_ms={config.pacing_ms}) -> {config.data_dir}"
    )
    try:
        report = PipelineJobRunner(config).run()
    except ExportError as exc:
        typer.echo(f"Job failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    print_report(report)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port."),
) -> None:
    """
    Trigger the export job in the background and serve the acknowledgement endpoint.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)
    runner = PipelineJobRunner(RunConfig.from_settings(settings))

    scheduler = JobScheduler()
    scheduler.define(runner.name, runner.run)
    uvicorn.run(
        create_app(scheduler, runner.name),
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_config=None,
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
