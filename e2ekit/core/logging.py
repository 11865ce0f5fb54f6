import logging as stdlib_logging
import sys

from loguru import logger
from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    level = level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        colorize=True,
        format="<green>{time:HH:mm:ss}</green> | <level>{level}</level> | {message}",
    )
    # Playwright and pytest plugins log through the stdlib.
    stdlib_logging.basicConfig(level=level, handlers=[RichHandler(rich_tracebacks=True)])
