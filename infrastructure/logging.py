"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

DEFAULT_LOG_DIR = Path.home() / ".somatic_studio" / "logs"


def init_logging(log_dir: str | Path | None = None, level: str = "INFO") -> Path:
    """Initialize rotating file logging under the given directory.

    Returns the directory the sink writes to.
    """
    log_path = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "studio_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    return log_path


def find_latest_log_file(log_dir: str | Path | None = None) -> Path | None:
    """Find the latest log file in the specified directory."""
    log_path = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    try:
        if not log_path.exists():
            return None
        log_files = list(log_path.glob("studio_*.log"))
        if not log_files:
            return None
        return max(log_files, key=lambda p: p.stat().st_mtime)
    except (OSError, ValueError):
        return None
