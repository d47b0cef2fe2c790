"""Centralized logging configuration for wxrelay."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from wxrelay.utils.helpers import ensure_dir, get_data_path


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    verbose: bool = False
) -> None:
    """
    Configure global logging sinks.

    Args:
        level: Minimum level for console output (default: INFO)
        log_file: Optional path for the persistent log file
        verbose: If True, set console level to DEBUG
    """
    logger.remove()

    if log_file is None:
        log_file = get_data_path() / "wxrelay.log"

    ensure_dir(log_file.parent)

    console_level = "DEBUG" if verbose else level

    logger.add(
        sys.stderr,
        level=console_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        backtrace=True,
        diagnose=False,
    )

    # The file sink always captures everything
    logger.add(
        str(log_file),
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        enqueue=True,
    )

    logger.debug(f"Logging initialized. Console level: {console_level}, File: {log_file}")
