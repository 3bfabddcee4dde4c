# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for lifecycle commands using structlog.

Domain services log through the standard library with %-style messages.
setup_logging renders those records and structlog's own events through
one processor chain: JSON outside development, colored console output
in development or when debugging. Values bound with log_context, such as
the command name or the approving staff member, appear on every line
emitted while the command runs.

Example:
    >>> from student_lifecycle.utils.logging import setup_logging, log_context
    >>> from student_lifecycle.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> with log_context(command="transfer", approved_by="Wakasek Kesiswaan"):
    ...     await workflow.transfer(student_id, from_class_id, to_class_id)
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from student_lifecycle.core.config.settings import Settings

HANDLER_NAME = "student_lifecycle"

_QUIET_LOGGERS = ("sqlalchemy", "aiosqlite", "asyncpg", "asyncio")


def _renderer(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and route standard library records through it.

    Calling it again replaces the handler installed by the previous call.

    Args:
        settings: Settings providing log_level, environment and debug.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("student_lifecycle").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Bind values to every log line emitted inside the block.

    The previous values are restored on exit, so nested commands and
    concurrent tasks do not leak context into each other.

    Args:
        **kwargs: Key-value pairs to bind.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
