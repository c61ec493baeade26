"""structlog configuration shared by the resolver packages and scripts.

Every module obtains its logger through :func:`get_logger` so that the
processor chain is configured in one place.  Events are snake_case names with
key/value context, e.g.::

    logger.warning("slot_missing", slot_key="introVideo", template="letter-hunt")
"""

import logging
import sys

import structlog

from app.config import log_format, log_level

_CONFIGURED = False


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog once per process.

    Args:
        level: Log level name (``DEBUG``, ``INFO`` ...).  Defaults to
            ``SLOT_RESOLVER_LOG_LEVEL`` then ``WARNING``.
        fmt: ``console`` or ``json``.  Defaults to ``SLOT_RESOLVER_LOG_FORMAT``
            then ``console``.
    """
    global _CONFIGURED

    level_name = log_level(level)
    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if log_format(fmt) == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level_name)
        ),
        # Logs go to stderr so script stdout stays machine-readable.
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _CONFIGURED = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger bound to *name*, configuring on first use."""
    if not _CONFIGURED:
        configure_logging()
    return structlog.get_logger(name)
