"""quickgen logging: loguru is the only sink.

The ``generation`` package logs through ``logging.getLogger(__name__)`` so
it stays usable without loguru.  ``setup_logging`` bridges those records,
uvicorn, httpx and sse-starlette into loguru.  Format and the list of
libraries held at WARNING come from ``QuickGenSettings``.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from quickgen.runtime.settings import QuickGenSettings

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# stdlib loggers owned by quickgen; they follow the configured level.
ROUTED_LOGGERS = ("quickgen.runtime.generation",)


class _LoguruBridge(logging.Handler):
    """Forward stdlib records to loguru, attributed to the real call-site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame, depth = frame.f_back, depth + 1

        logger.opt(depth=depth, exception=record.exc_info).bind(stdlib_logger=record.name).log(
            level, record.getMessage()
        )


def setup_logging(settings: QuickGenSettings) -> None:
    """Install the loguru sink and the stdlib bridge.

    Call once at process startup, before uvicorn starts.  Calling it again
    replaces the previous configuration.
    """
    level = settings.log_level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=settings.log_format or DEFAULT_FORMAT)

    bridge = _LoguruBridge()
    logging.basicConfig(handlers=[bridge], level=0, force=True)

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [bridge]
        routed.propagate = False
        routed.setLevel(level)

    for name in settings.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={}, quiet={})", level, ",".join(settings.quiet_loggers))
