"""Logging initialization utilities using loguru."""

from __future__ import annotations

import os
from pathlib import Path
import sys

from loguru import logger

DEFAULT_LOG_DIR = Path.home() / ".lightviewer" / "logs"


def get_log_directory(log_dir: str | None = None) -> str:
    """Resolve the log directory, expanding ~ and environment variables."""
    if not log_dir:
        return str(DEFAULT_LOG_DIR)
    return os.path.expanduser(os.path.expandvars(log_dir))


def init_logging(log_dir: str | None = None, level: str = "INFO", console: bool = False) -> Path:
    """Initialize rotating file logging under the given directory.

    With `console` the same records are also echoed to stderr.
    """
    log_path = Path(get_log_directory(log_dir))
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "app_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    if console:
        logger.add(sys.stderr, level=level, backtrace=False, diagnose=False)
    return log_path


def find_latest_log_file(log_dir: str | None = None) -> Path | None:
    """Find the latest log file in the specified directory."""
    try:
        log_path = Path(get_log_directory(log_dir))
        if not log_path.exists():
            return None

        log_files = list(log_path.glob("app_*.log"))
        if not log_files:
            return None

        return max(log_files, key=lambda p: p.stat().st_mtime)
    except (OSError, ValueError):
        return None
