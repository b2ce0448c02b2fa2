"""structlog configuration for cartcalc.

Everything goes to stderr so stdout stays parseable. The renderer and the
level of the ``cartcalc`` loggers come from :class:`CartcalcSettings`:
``--log-json`` picks the JSON renderer, ``--verbose`` forces DEBUG, and
otherwise ``log_level`` (TOML, or ``CARTCALC_LOG_LEVEL``) applies.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from cartcalc.config.settings import CartcalcSettings

# Third-party loggers stay at this level whatever cartcalc's level is.
ROOT_LEVEL = logging.WARNING

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def log_level(settings: CartcalcSettings) -> int:
    """Effective level for the ``cartcalc`` logger tree."""
    if settings.verbose:
        return logging.DEBUG
    return logging.getLevelNamesMapping()[settings.log_level]


def _renderer(settings: CartcalcSettings) -> structlog.types.Processor:
    if settings.log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(settings: CartcalcSettings) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Safe to call repeatedly; the previous root handlers are replaced.
    """
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(ROOT_LEVEL)

    logging.getLogger("cartcalc").setLevel(log_level(settings))
