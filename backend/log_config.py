"""Logging setup using loguru."""
import sys
from typing import Optional

from loguru import logger

FMT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> | {message}"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    logger.remove()
    logger.add(sys.stderr, format=FMT, level=level, colorize=True, diagnose=False)
    if log_file:
        logger.add(
            log_file,
            format=FMT,
            level=level,
            rotation="10 MB",
            retention=5,
            diagnose=False,
        )


__all__ = ["setup_logging"]
