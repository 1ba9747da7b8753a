"""
Structured logging setup. File + console, plus the bounded in-memory log feed
exposed to the UI layer.
"""

from __future__ import annotations
import logging
import sys
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from trend_bot.core.types import LogEntry, Severity

ROOT_LOGGER = "trend_bot"


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger: console and optional file.
    Never log API keys or secrets.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(log_level)
    root.handlers.clear()

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_fmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=date_fmt)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / log_file
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

    return root


def _severity_for(record: logging.LogRecord) -> Severity:
    explicit = getattr(record, "severity", None)
    if explicit is not None:
        return Severity(explicit)
    if record.levelno >= logging.ERROR:
        return Severity.ERROR
    if record.levelno >= logging.WARNING:
        return Severity.WARNING
    return Severity.INFO


class LogFeed(logging.Handler):
    """
    Ring of the most recent log entries, newest first.

    Records may carry extra={"severity": "success"} to mark positive events;
    otherwise severity follows the record level. Timestamps are shifted by
    timezone_offset hours for display.
    """

    def __init__(self, capacity: int = 50, timezone_offset: float = 0.0, level: int = logging.INFO):
        super().__init__(level=level)
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._tz = timezone(timedelta(hours=timezone_offset))
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=self._tz),
                message=record.getMessage(),
                severity=_severity_for(record),
            )
        except Exception:
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.appendleft(entry)

    def entries(self) -> tuple[LogEntry, ...]:
        with self._entries_lock:
            return tuple(self._entries)

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()

    def attach(self, logger_name: str = ROOT_LOGGER) -> "LogFeed":
        """Attach to the package logger. Lowers the logger level if needed so INFO reaches the feed."""
        logger = logging.getLogger(logger_name)
        if logger.level == logging.NOTSET or logger.level > self.level:
            logger.setLevel(self.level)
        logger.addHandler(self)
        return self

    def detach(self, logger_name: str = ROOT_LOGGER) -> None:
        logging.getLogger(logger_name).removeHandler(self)
