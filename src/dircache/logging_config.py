"""Logging configuration for dircache.

Log records go to a session file so they never mix with the rendered plan
on stdout.
"""

import logging
from pathlib import Path
from typing import Optional

LOGGER_NAME = "dircache"
LOG_FILE_NAME = "dircache.log"


def _rotate_log_if_needed(log_file: Path, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    """Rotate log file on startup if it exceeds max size.

    Args:
        log_file: Path to the log file
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
    """
    if not log_file.exists() or log_file.stat().st_size < max_bytes:
        return

    oldest = log_file.parent / f"{log_file.name}.{backup_count}"
    if oldest.exists():
        oldest.unlink()

    for i in range(backup_count - 1, 0, -1):
        source = log_file.parent / f"{log_file.name}.{i}"
        if source.exists():
            source.rename(log_file.parent / f"{log_file.name}.{i + 1}")

    log_file.rename(log_file.parent / f"{log_file.name}.1")


def setup_logging(log_dir: Optional[Path], verbose: bool = False) -> logging.Logger:
    """Set up dircache logging.

    Args:
        log_dir: Directory to store the log file; None disables file logging
        verbose: Log DEBUG records instead of INFO and above

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_dir is None:
        logger.addHandler(logging.NullHandler())
        return logger

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    _rotate_log_if_needed(log_file)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info("dircache session started, log file: %s", log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance under the dircache hierarchy
    """
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
