"""
Logging for export runs.

One root configuration is shared by the CLI, the scheduler thread and the
stages. Stage code tags its lines with `extra={"job": ..., "stage": ...}`:

- console lines (the default) show that context as a `[job/stage]` prefix;
- JSON lines (`json_logs=True`) carry every `extra=` field as a top-level key
  next to a UTC `time`, so checkpoint fields such as `rss_mb` stay queryable.

Usage:
    from user_export.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("Wrote batch: 100000", extra={"job": "generate-and-zip-users", "stage": "generate"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(context)s%(message)s"

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra", "context"}


def _context_tag(record: logging.LogRecord) -> str:
    parts = [str(value) for value in (getattr(record, "job", None), getattr(record, "stage", None)) if value]
    return f"[{'/'.join(parts)}] " if parts else ""


class RunContextFilter(logging.Filter):
    """Attach the `[job/stage]` prefix used by the console format."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = _context_tag(record)
        return True


def _json_formatter(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    # Paths, datetimes and enums from stage results are logged as text.
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Configure root logging for an export run.

    Parameters
    ----------
    level : str
        Logging level name, usually `LOG_LEVEL` from settings.
    json_logs : bool
        Emit JSON lines instead of the `[job/stage]`-prefixed console format.
    force : bool
        Replace an existing configuration. With `force=False` an already
        configured root logger (e.g. under uvicorn or pytest) is left alone.
    """
    if not force and logging.getLogger().handlers:
        return

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "run_context": {"()": RunContextFilter},
            },
            "formatters": {
                "console": {
                    "format": CONSOLE_FORMAT,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "filters": ["run_context"],
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "RunContextFilter"]
