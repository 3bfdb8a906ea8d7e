"""Logging setup shared by the app, the launcher and the engine modules."""

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVEL_ENV = "FPL_ADVISOR_LOG_LEVEL"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once. Level falls back to $FPL_ADVISOR_LOG_LEVEL, then INFO."""
    global _configured
    if _configured:
        return
    level_name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
