"""Centralized logging configuration for lottie2video"""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .config import LOG_DIR, LOG_LEVEL
from .utils import get_timestamp


def configure_logging(log_level: Optional[str] = None, file_logging: bool = True) -> Optional[Path]:
    """
    Central logging configuration for all modules.

    Returns:
        Path of the session log file, or None when file logging is off.
    """
    level = (log_level or LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logger = logging.getLogger("lottie2video")
    logger.setLevel(numeric_level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    # Rich console handler
    console_handler = RichHandler(show_path=False, rich_tracebacks=True)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)

    log_file = None
    if file_logging:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOG_DIR / f"lottie2video_{get_timestamp()}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
        ))
        logger.addHandler(file_handler)

    # Capture warnings
    logging.captureWarnings(True)

    logger.info("Started new logging session")
    if log_file:
        logger.info("Log file: %s", log_file)
    return log_file
