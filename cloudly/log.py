# Filename: cloudly/log.py
import logging
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once, from settings.log_level unless overridden."""
    logging.basicConfig(
        level=level or settings.log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # boto's wire logging is noisy at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
