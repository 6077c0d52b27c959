"""JSON-lines local logging and crash hook setup."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import config_root


_LOGGER_NAME = "ollama_compass"
_EXTRA_FIELDS = ("event", "crash_id", "path", "method", "status", "subscribers")


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    level: int | str = logging.INFO,
    directory: Path | None = None,
) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    target_dir = directory or log_dir()
    target_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(target_dir / "ollama-compass.log"),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(stream_handler)

    logger.info("logging configured", extra={"event": "logging_configured"})
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


def _log_crash(event: str, what: str, exc_info) -> None:
    crash_id = str(uuid.uuid4())
    get_logger().critical(
        f"{what} crash_id={crash_id}",
        exc_info=exc_info,
        extra={"event": event, "crash_id": crash_id},
    )


def install_crash_hooks() -> None:
    """Route uncaught exceptions from any thread, and hard faults, into the log directory."""
    sys.excepthook = lambda *exc_info: _log_crash("uncaught_exception", "uncaught exception", exc_info)
    threading.excepthook = lambda args: _log_crash(
        "thread_exception",
        f"thread {args.thread.name if args.thread else '?'} crashed",
        (args.exc_type, args.exc_value, args.exc_traceback),
    )

    fault_file = (log_dir() / "fault.log").open("a", encoding="utf-8")
    faulthandler.enable(file=fault_file, all_threads=True)
    get_logger().info("fault handler enabled", extra={"event": "fault_handler_enabled"})
