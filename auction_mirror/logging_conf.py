"""JSON log files for the mirror service, with structlog events on top."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any

import structlog

SERVICE_LOG = "auction_mirror.log"
ERROR_LOG = "error.log"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    """``$AUCTION_MIRROR_HOME/logs``, falling back to ``<project>/logs``."""

    env_root = os.environ.get("AUCTION_MIRROR_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _handlers(log_dir: Path, console_level: str) -> dict[str, dict[str, Any]]:
    files = {"service_file": ("INFO", SERVICE_LOG), "error_file": ("ERROR", ERROR_LOG)}
    handlers: dict[str, dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "level": console_level, "formatter": "json"}
    }
    for name, (level, filename) in files.items():
        path = log_dir / filename
        path.touch(exist_ok=True)
        handlers[name] = {
            "class": "logging.FileHandler",
            "level": level,
            "filename": str(path),
            "formatter": "json",
        }
    return handlers


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Route ``auction_mirror`` events to the console and the two log files.

    Only the first call configures anything; later calls return the logger.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        level = "DEBUG" if verbose else "INFO"
        handlers = _handlers(log_dir, level)
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": JSON_FORMAT,
                    }
                },
                "handlers": handlers,
                "loggers": {
                    "auction_mirror": {
                        "handlers": list(handlers),
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )
        # event dicts are rendered by the JsonFormatter on each handler
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
    return structlog.get_logger("auction_mirror")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = ["ERROR_LOG", "SERVICE_LOG", "configure_logging", "default_log_dir", "tail_log"]
