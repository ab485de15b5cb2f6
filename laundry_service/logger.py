"""Logger module for the laundry order service."""

import sys

from loguru import logger

from laundry_service.config import settings

# Remove default handler
logger.remove()

logger.add(
    sys.stderr,
    level=settings.LOG_LEVEL,
    format=(
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    ),
    colorize=True,
    enqueue=True,
    backtrace=True,
    diagnose=False,
)

__all__ = ["logger"]
