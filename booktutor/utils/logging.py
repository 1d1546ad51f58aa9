# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Logging setup for BookTutor.

Most modules log through ``logging.getLogger(__name__)`` with ``%s``
arguments; a few use structlog's keyword style. Both end up in one stdout
handler whose structlog ProcessorFormatter renders JSON outside
development and a colored console line in development.

Values bound with ``bind_context`` (the chat route binds ``student_id``
and ``book_id``) are merged into every line of the current request, from
either kind of logger.

Example:
    >>> setup_logging(get_settings())
    >>> bind_context(student_id=1, book_id=7)
    >>> logging.getLogger("booktutor.core").info("Turn finished after %d rounds", 2)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from booktutor.core.config.settings import Settings

# Provider SDK and drivers log every request at INFO
QUIET_LOGGERS = (
    "LiteLLM",
    "httpx",
    "httpcore",
    "aiosqlite",
    "sqlalchemy.engine",
    "uvicorn.access",
)

_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderers(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings") -> None:
    """Route stdlib and structlog loggers through one stdout handler.

    Safe to call more than once; the root handler is replaced, not added.

    Args:
        settings: Application settings (environment, debug, log_level).
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_PRE_CHAIN,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(settings),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a keyword-style structlog logger."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Attach key-value pairs to every log line of the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with bind_context; call when a request ends."""
    structlog.contextvars.clear_contextvars()
