import logging
import sys
from typing import Optional

from timeline_feedback.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure root logging for processes embedding the engine.

    Uses LOG_LEVEL from settings, forced to DEBUG when DEBUG is enabled.
    Library code only creates module loggers; calling this is up to the host.
    """
    settings = settings or get_settings()
    level_name = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
