"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Iterable

import structlog

from .config import ConfigLocator

_LOGGING_INITIALISED = False

EXPORT_LOG_NAME = "export.log"
ERROR_LOG_NAME = "error.log"


def default_log_dir() -> Path:
    return ConfigLocator().project_root / "logs"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = log_dir or default_log_dir()
    export_log = log_dir / EXPORT_LOG_NAME
    error_log = log_dir / ERROR_LOG_NAME
    log_dir.mkdir(parents=True, exist_ok=True)
    export_log.touch(exist_ok=True)
    error_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                    "export_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(export_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "favro_exporter": {
                        "handlers": ["console", "export_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # Forward structlog events to stdlib logging; JSON formatting stays at handler level
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("favro_exporter")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_logs(log_dir: Path | None = None) -> Iterable[Path]:
    """Return available log file paths."""

    log_dir = log_dir or default_log_dir()
    if not log_dir.exists():
        return []
    return sorted(p for p in log_dir.glob("*.log"))


__all__ = [
    "ERROR_LOG_NAME",
    "EXPORT_LOG_NAME",
    "available_logs",
    "configure_logging",
    "default_log_dir",
    "tail_log",
]
