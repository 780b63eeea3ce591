# horiohop/core/logger.py
from loguru import logger

from horiohop.core.config import settings
from horiohop.core.logging_config import setup_logging

setup_logging(settings.LOG_LEVEL)

__all__ = ["logger"]
