"""
Logging setup for APK Store.

Console output goes to stderr (colored on a terminal); an optional rotating
file log can be plain text or one JSON object per line. Structured context
such as the collection name travels on each record via ``ContextLogger``.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

QUIET_LOGGERS = ("google", "grpc", "urllib3")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_LEVEL_COLORS = {
    logging.DEBUG: "36",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "35",
}


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


def _context_suffix(record: logging.LogRecord) -> str:
    context = _context(record)
    if not context:
        return ""
    return " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context included under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        context = _context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``LEVEL logger: message [key=value ...]``, level colored when asked."""

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.color and record.levelno in _LEVEL_COLORS:
            level = f"\033[{_LEVEL_COLORS[record.levelno]}m{level}\033[0m"
        line = f"{level} {record.name}: {record.getMessage()}{_context_suffix(record)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TextFileFormatter(logging.Formatter):
    """Timestamped plain-text lines for the file log."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record) + _context_suffix(record)


def parse_level(level: Union[int, str]) -> int:
    """Accept ``logging.DEBUG`` style ints or names like ``"debug"``."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
):
    """
    Replace the root handlers with the store's console (and file) handlers.

    The file handler always records DEBUG so a log file is useful even when
    the console is kept quiet.
    """
    level = parse_level(level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(min(level, logging.DEBUG) if log_file else level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter(color=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_logs else TextFileFormatter())
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that attaches a fixed context mapping to every record.

    The context lives on the adapter, not on global logging state, so
    records from other threads are never tagged with it.

    Example:
        log = get_logger(__name__, collection="apps")
        log.bind(generation=2).info("Subscribing")
    """

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **context) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **context})


def get_logger(name: str, **context) -> ContextLogger:
    """Module logger carrying ``context`` on every record."""
    return ContextLogger(logging.getLogger(name), context)
