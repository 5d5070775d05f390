"""
Track Your Stack - Logger Configuration
Centralized logging with loguru
"""
import sys
from pathlib import Path
from loguru import logger

from trackstack.config import settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(log_file: str | None = None) -> None:
    """
    Install the console sink and, when a log file is configured,
    the rotating file sinks.

    Args:
        log_file: Path of the main log file (defaults to settings.LOG_FILE)
    """
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format=CONSOLE_FORMAT,
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    )

    log_file = settings.LOG_FILE if log_file is None else log_file
    if not log_file:
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # File handler for all logs
    logger.add(
        log_path,
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="DEBUG",
    )

    # File handler for errors only
    logger.add(
        log_path.with_name("error.log"),
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="ERROR",
    )


__all__ = ["logger", "configure_logging"]
