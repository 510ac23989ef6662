"""Process-wide log setup and per-module loggers for the runtime."""

import logging
import os
import sys

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Root handler settings: level name, record format and timestamp format."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LogConfig | None = None) -> None:
    """Install a stdout handler on the root logger, replacing any earlier one.

    Call once from the entry point (the chat script, a worker). Library code
    only asks for loggers via ``get_logger``.
    """
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    # SDK request logs drown out loop progress at INFO
    for noisy in ("anthropic", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Return the logger for ``name`` at ``level``, or at ``LOG_LEVEL`` when not given."""
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
