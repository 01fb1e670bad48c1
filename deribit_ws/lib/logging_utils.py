"""
Logging setup for the WebSocket client.

Library modules only ever call ``logging.getLogger(__name__)``; applications
call ``setup_logging`` once. Lines look like:

    2024-01-01 12:00:00.123 [INFO    ] deribit_ws.api.client - Connected [channels=2]

Keys passed through ``extra=`` are appended as ``key=value``. aiohttp's own
loggers are held at WARNING unless the client runs at DEBUG, so frame-level
chatter does not drown the client's messages.
"""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

TRANSPORT_LOGGERS = ("aiohttp.client", "aiohttp.websocket", "aiohttp.internal")


class ClientFormatter(logging.Formatter):
    """Millisecond UTC timestamps plus `extra` fields as key=value."""

    def __init__(self, include_extras: bool = True):
        self.include_extras = include_extras
        super().__init__("[%(levelname)-8s] %(name)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        message = super().format(record)

        if self.include_extras:
            extras = [
                f"{k}={v}" for k, v in record.__dict__.items()
                if k not in _RESERVED_RECORD_KEYS and not k.startswith("_")
            ]
            if extras:
                message = f"{message} [{' '.join(extras)}]"

        return f"{moment.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]} {message}"


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the root logger for a client application.

    Replaces existing root handlers with a stderr handler and, when log_dir
    is given, a rotating file handler.

    Args:
        level: Level name; unknown names fall back to INFO
        log_dir: Directory for the log file (created if missing)
        log_file: File name inside log_dir (default: deribit_ws_YYYY-MM-DD.log)
        max_bytes: Size at which the file rotates
        backup_count: Rotated files to keep

    Returns:
        Root logger
    """
    root_logger = logging.getLogger()
    log_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ClientFormatter())
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        if not log_file:
            log_file = f"deribit_ws_{datetime.now(timezone.utc):%Y-%m-%d}.log"

        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(ClientFormatter())
        root_logger.addHandler(file_handler)

    transport_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    return root_logger


def log_latency(
    logger: logging.Logger,
    operation: str,
    start_time: float,
    end_time: float
) -> float:
    """Log a round trip at DEBUG and return it in milliseconds."""
    latency_ms = (end_time - start_time) * 1000
    logger.debug(f"{operation}: {latency_ms:.2f}ms")
    return latency_ms
