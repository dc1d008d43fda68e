from __future__ import annotations

import logging
import os
from typing import Optional

import structlog

def configure_logging(level: Optional[str] = None) -> None:
    """
    structlog setup for processes embedding the engine.
    Level comes from the argument, else LOG_LEVEL, else INFO.
    """
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {name}")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        cache_logger_on_first_use=False,
    )
