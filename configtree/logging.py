"""Central logging helpers"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union
import structlog
import structlog.contextvars
import structlog.stdlib

from configtree.config import settings

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def _build_file_handler(component: str) -> RotatingFileHandler:
    log_dir: Path = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{component}.log"
    handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5)
    handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
    return handler


def setup_logging(component: str = "configtree", level: Optional[Union[int, str]] = None) -> None:
    """
    Configure structlog + stdlib logging for a component.

    Log lines go to stderr and to ``<log_dir>/<component>.log``; stdout is
    left alone. The library itself never calls this: an embedding
    application does, once, with its own component name.

    The ``ctl`` shell calls ``setup_logging("ctl", WARNING)`` so that command
    results on stdout are not interleaved with protocol chatter, and
    ``setup_logging("ctl", DEBUG)`` under ``--verbose`` to trace every frame.

    Args:
        component: Log file name and the ``component`` field on every event
        level: Level number or name; defaults to ``settings.log_level``

    Calling it again replaces the handlers installed by the previous call.
    """
    level = _resolve_level(level)

    stream_handler = logging.StreamHandler(sys.stderr)
    handlers = [stream_handler, _build_file_handler(component)]

    logging.basicConfig(level=level, handlers=handlers, format=_DEFAULT_FORMAT, force=True)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(component=component)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger(__name__).info("logging_initialized", extra={"component": component})
