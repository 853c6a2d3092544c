"""
Logging setup for fatseg.

Every module asks for its own logger; the application (a notebook, a batch
script) calls setup_logging() once.  Per-tile messages go to DEBUG, so a
slide-level run at INFO only shows slide-level progress.

Usage:
    from fatseg.utils.logging import get_logger, setup_logging

    logger = get_logger(__name__)

    setup_logging(level="DEBUG", log_dir="/path/to/run")

    logger.debug("Tile shape: %s", mask.shape)
    logger.warning("Degenerate contour with %d points", len(polygon))
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_loggers: Dict[str, logging.Logger] = {}
_initialized = False


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # The record is shared with the file handler, so colour a copy
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a fatseg module.

    Args:
        name: Module name (typically __name__)
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers[name] = logging.getLogger(name)
    return logger


def _log_file_path(log_file: Optional[Union[str, Path]], log_dir: Optional[Union[str, Path]]) -> Path:
    if log_file:
        return Path(log_file)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(log_dir) / f"fatseg_{timestamp}.log"


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    console: bool = True,
    colored: bool = True,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name or number (DEBUG shows per-tile stage counts)
        log_file: Explicit log file path
        log_dir: Directory for a timestamped fatseg_YYYYmmdd_HHMMSS.log,
            used when log_file is not given
        console: Log to stdout
        colored: Colour level names when stdout is a terminal
        format_string: Record format, DEFAULT_FORMAT if None

    Returns:
        The root logger
    """
    global _initialized

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    format_string = format_string or DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _initialized:
        root_logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        formatter_class = ColoredFormatter if colored and sys.stdout.isatty() else logging.Formatter
        console_handler.setFormatter(formatter_class(format_string))
        root_logger.addHandler(console_handler)

    if log_file or log_dir:
        log_path = _log_file_path(log_file, log_dir)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode='a')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to file: {log_path}")

    _initialized = True
    return root_logger


def log_parameters(logger: logging.Logger, params: Dict[str, Any], title: str = "Parameters") -> None:
    """
    Log a parameter dict (e.g. GlobuleDetectionParameters.model_dump()) as a block.

    Long lists and dicts are summarized by their length.
    """
    rule = '=' * 50
    logger.info(rule)
    logger.info(title)
    logger.info(rule)

    for key, value in params.items():
        if isinstance(value, (list, tuple)) and len(value) > 5:
            value = f"[{len(value)} items]"
        elif isinstance(value, dict) and len(value) > 5:
            value = f"{{{len(value)} keys}}"
        logger.info(f"  {key}: {value}")

    logger.info(rule)


def _format_duration(seconds: float) -> str:
    if seconds >= 60:
        return f"{seconds / 60:.1f} minutes"
    if seconds >= 1:
        return f"{seconds:.1f} seconds"
    return f"{seconds * 1000:.1f} ms"


def log_processing_end(
    logger: logging.Logger,
    operation: str,
    duration_seconds: Optional[float] = None,
    level: int = logging.INFO,
    **results
) -> None:
    """Log the end of an operation, its duration and any result counts."""
    if duration_seconds is None:
        logger.log(level, f"Completed: {operation}")
    else:
        logger.log(level, f"Completed: {operation} in {_format_duration(duration_seconds)}")

    for key, value in results.items():
        logger.log(level, f"  {key}: {value}")


class ProcessingTimer:
    """
    Context manager that logs the start, end and duration of an operation.

    Tile-level work runs thousands of times per slide, so the level is
    configurable; globule detection logs at DEBUG.  A failure is logged at
    ERROR and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        if exc_type is not None:
            self.logger.error(f"Failed: {self.operation} after {_format_duration(duration)} - {exc_val}")
        else:
            log_processing_end(self.logger, self.operation, duration, level=self.level)
        return False
