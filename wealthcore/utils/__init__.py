from __future__ import annotations
import logging
import os

from .env_tools import load_config, load_env_once
from .numbers import safe_float

# Opt-in console logging for scripts: from wealthcore.utils import get_logger
def get_logger(name: str = "wealthcore"):
    lvl = os.getenv("LOG_LEVEL", "INFO").upper()
    logger = logging.getLogger(name)
    if not logger.handlers:
        logging.basicConfig(level=getattr(logging, lvl, logging.INFO),
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return logger

__all__ = ["get_logger", "load_config", "load_env_once", "safe_float"]
