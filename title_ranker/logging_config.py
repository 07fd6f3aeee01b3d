"""
Logging configuration for the title ranker.

Every module logs through loguru with a bound "name" so the sinks below can
show which component (session, background_writer, artwork_cache, ...) spoke.
"""

import sys
from pathlib import Path

from loguru import logger
from typing import Any

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


def setup_logging(level: str = "INFO", debug: bool = False, log_dir: str | Path = ".") -> None:
    """
    Configure loguru logging.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Force DEBUG on the console and add a debug log file
        log_dir: Directory for title_ranker.log (and title_ranker_debug.log)
    """
    logger.remove()
    # Records from unbound loggers still need a name for the formats below
    logger.configure(extra={"name": "title_ranker"})

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}:{function}:{line}</cyan> - <level>{message}</level>",
    )

    # Placements, failed writes and lookup errors survive the terminal session
    logger.add(
        log_path / "title_ranker.log",
        level="INFO",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )

    if debug:
        logger.add(
            log_path / "title_ranker_debug.log",
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """Logger bound to a component name ("title_ranker" if omitted)."""
    return logger.bind(name=name or "title_ranker")
