import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER = "vhc_offline"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[41m",
}
_RESET = "\033[0m"


class LogFormatter(logging.Formatter):
    """Colors whole lines by level when stderr is a terminal."""

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: bool = True):
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = use_colors and sys.stderr.isatty()

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = _LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{line}{_RESET}" if color else line


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> logging.Logger:
    """Attach handlers to the package logger. Called once by the CLI."""
    log_level = getattr(logging, str(level).upper(), logging.WARNING)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(log_level)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(LogFormatter())
        root.addHandler(stream)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(LogFormatter(FILE_FORMAT, use_colors=False))
        root.addHandler(rotating)

    for h in root.handlers:
        h.setLevel(log_level)
    root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class PerformanceLogger:
    """Named wall-clock timers that report through a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("performance")
        self._started: Dict[str, float] = {}
        self.durations: Dict[str, float] = {}

    def start_timer(self, operation: str):
        self._started[operation] = time.monotonic()
        self.logger.debug(f"Started: {operation}")

    def stop_timer(self, operation: str) -> float:
        started = self._started.pop(operation, None)
        if started is None:
            self.logger.warning(f"No timer found for operation: {operation}")
            return 0.0
        duration = time.monotonic() - started
        self.durations[operation] = duration
        return duration

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> float:
        duration = self.stop_timer(operation)
        extra = {"operation": operation, "duration_seconds": round(duration, 3)}
        extra.update(details or {})
        self.logger.info(f"{operation} took {duration:.3f}s", extra=extra)
        return duration
