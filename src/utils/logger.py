"""
Logging utilities for AgriLink services

Service modules (ingestion, pump control) log through loguru. Each record
carries a ``component`` field, set by ``get_logger``, plus any device or
farmer context bound by the caller.
"""

import sys
from pathlib import Path
from loguru import logger
from typing import Optional

from src.api.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | {message} | {extra}"


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    log_file: str = "agrilink.log",
    rotation: str = "10 MB",
    retention: str = "30 days",
    serialize: bool = False
):
    """
    Configure the service loggers

    Args:
        log_level: Minimum level, defaults to settings.LOG_LEVEL
        log_dir: Directory for the rotating log file, defaults to
            settings.LOG_DIR; no file is written when neither is set
        log_file: Name of the log file
        rotation: When to rotate the log file (e.g., "10 MB", "1 day")
        retention: How long to keep old log files
        serialize: Write the file sink as JSON lines
    """
    level = (log_level or settings.LOG_LEVEL).upper()
    log_dir = log_dir or settings.LOG_DIR

    handlers = [
        {"sink": sys.stderr, "format": CONSOLE_FORMAT, "level": level, "colorize": True}
    ]

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers.append({
            "sink": str(Path(log_dir) / log_file),
            "format": FILE_FORMAT,
            "level": level,
            "rotation": rotation,
            "retention": retention,
            "compression": "zip",
            "serialize": serialize,
        })

    logger.configure(handlers=handlers, extra={"component": "agrilink"})

    if log_dir:
        logger.info(f"Logging to {Path(log_dir) / log_file} at {level}")

    return logger


def get_logger(name: Optional[str] = None, **context):
    """
    Logger for one service module

    Args:
        name: Module name, shown as the record's component
        **context: Extra fields bound to every record (e.g. device_id)
    """
    if name:
        context["component"] = name
    return logger.bind(**context) if context else logger


setup_logging()
