"""Structured logging configuration for the media transfer service."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger

from core.settings import LoggerSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


class JSONFormatter:
    """JSON formatter for structured logging.

    Loguru treats the return value of a format callable as a template, so the
    serialized line is stashed in ``extra`` and referenced from there.
    """

    def __call__(self, record: dict[str, Any]) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "module": record.get("module", ""),
            "function": record.get("function", ""),
            "line": record.get("line", 0),
        }

        exception = record.get("exception")
        if exception is not None:
            log_data["exception"] = {
                "type": exception.type.__name__ if exception.type else None,
                "value": str(exception.value) if exception.value else None,
            }

        for key, value in record["extra"].items():
            if not key.startswith("_"):
                log_data[key] = value

        record["extra"]["_json"] = json.dumps(log_data, ensure_ascii=False, default=str)
        return "{extra[_json]}\n"


def _retention(settings: LoggerSettings) -> str | int | None:
    if settings.file.max_age > 0:
        return f"{settings.file.max_age} days"
    if settings.file.max_backups > 0:
        return settings.file.max_backups
    return None


def setup_logging(settings: LoggerSettings) -> None:
    """Configure logging for the application.

    Args:
        settings: Logger section of the service configuration. ``output``
            selects console, file or both sinks; the file sink writes JSON.
    """
    # Remove default handler
    logger.remove()

    if settings.output in {"console", "both"}:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=settings.level,
            colorize=True,
        )

    if settings.output in {"file", "both"}:
        log_file = settings.file.path
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=JSONFormatter(),
            level=settings.level,
            rotation=f"{settings.file.max_size} MB",
            retention=_retention(settings),
            compression="zip" if settings.file.compress else None,
        )


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance.

    Args:
        name: Optional logger name. If None, returns the default logger.

    Returns:
        Logger instance.
    """
    if name:
        return logger.bind(name=name)
    return logger
