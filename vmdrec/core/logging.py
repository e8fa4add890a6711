"""Logging system with colored output and file logging"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union


ROOT_LOGGER = "vmdrec"

# Thread name prefix of the recorder's background export worker
EXPORT_THREAD_PREFIX = "vmd-export"

# Subsystems that log once per played frame
DEFAULT_SUBSYSTEM_LEVELS = {
    "motion.clip": "INFO",
}


class ColoredFormatter(logging.Formatter):
    """Colored log output for terminal."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Copy so the file handler still sees plain text
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        record.name = f"\033[34m{record.name}{self.RESET}"  # Blue for module name
        if record.threadName.startswith(EXPORT_THREAD_PREFIX):
            record.name = f"{record.name} [export]"
        return super().format(record)


class ExportWorkerFilter(logging.Filter):
    """
    Keeps the console quiet while an export runs in the background.

    Records from the export worker thread below min_level are dropped;
    records from every other thread pass untouched.
    """

    def __init__(self, min_level: Union[int, str] = logging.WARNING):
        super().__init__()
        self.min_level = _to_level(min_level)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.threadName.startswith(EXPORT_THREAD_PREFIX):
            return record.levelno >= self.min_level
        return True


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def set_subsystem_levels(levels: Dict[str, Union[int, str]]) -> None:
    """Set levels on individual subsystem loggers ("motion.clip": "INFO")."""
    for name, level in levels.items():
        get_logger(name).setLevel(_to_level(level))


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    subsystem_levels: Optional[Dict[str, Union[int, str]]] = None,
    export_worker_level: Union[int, str] = logging.WARNING,
) -> logging.Logger:
    """
    Setup application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name
        log_dir: Directory for log files
        subsystem_levels: Per-subsystem overrides; DEFAULT_SUBSYSTEM_LEVELS
            when None, none at all when empty
        export_worker_level: Console threshold for the export worker thread

    Returns:
        Root logger instance
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(_to_level(level))
    set_subsystem_levels(DEFAULT_SUBSYSTEM_LEVELS if subsystem_levels is None else subsystem_levels)

    if root_logger.handlers:
        return root_logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.addFilter(ExportWorkerFilter(export_worker_level))
    console_format = ColoredFormatter(
        "%(asctime)s │ %(levelname)-8s │ %(name)-24s │ %(message)s",
        datefmt="%H:%M:%S"
    )
    console_handler.setFormatter(console_format)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_path = log_path / f"{log_file}_{timestamp}.log"

        # The file keeps every thread's records
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(threadName)-12s | %(name)-24s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_format)
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to file: {file_path}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger under the vmdrec namespace.

    Args:
        name: Module name (e.g., "motion.ghost", "export.vmd")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
