"""Structured JSON logging configuration for the TalkBack service."""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from pythonjsonlogger import jsonlogger

from .config import get_settings

SERVICE_NAME = "talkback-service"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with service metadata."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["service"] = SERVICE_NAME
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["source"] = f"{record.filename}:{record.lineno}"

        # Drop the raw names, they are duplicated above
        log_record.pop("levelname", None)
        log_record.pop("name", None)


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structured JSON logging on the root logger.

    Args:
        log_level: Override log level (defaults to settings.log_level)
    """
    settings = get_settings()
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace any handlers installed by the runtime (uvicorn, serverless host)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.setLevel(level)
    root_logger.addHandler(stdout_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
