"""Logger setup shared by the API and the tracker services.

Usage:
    from tracker.utils.logger import get_logger
    logger = get_logger(__name__)
"""
import logging
import sys

from tracker.config import settings


def setup_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
