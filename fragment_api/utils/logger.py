import sys
from typing import Optional

from loguru import logger

from ..config import settings

# Library code stays quiet until an application opts in; host sinks are left alone
logger.disable("fragment_api")


def setup_logging(level: Optional[str] = None):
    """Install the console sink and enable this package's logs (CLI entry point)"""
    logger.remove()
    logger.add(
        sink=sys.stderr,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level or settings.log_level,
        colorize=True
    )
    logger.enable("fragment_api")


__all__ = ["logger", "setup_logging"]
