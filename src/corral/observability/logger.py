"""Structured logging with a per-recheck correlation id.

Uses structlog for structured logging over the stdlib ``logging`` tree.
Modules log through ``logging.getLogger(__name__)``; ``setup_logging``
installs a structlog ``ProcessorFormatter`` on the root logger so those
records carry the ``recheck_id`` of the evaluation pass that produced them,
and transitions of one pass can be grouped.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import IO, Any

import structlog

_recheck_id: ContextVar[str] = ContextVar("recheck_id", default="")


def get_recheck_id() -> str:
    """Get current recheck ID from context, creating one if unset."""
    rid = _recheck_id.get()
    if not rid:
        rid = uuid.uuid4().hex[:12]
        _recheck_id.set(rid)
    return rid


def set_recheck_id(recheck_id: str) -> None:
    _recheck_id.set(recheck_id)


def new_recheck_id() -> str:
    """Generate and set a new recheck ID."""
    rid = uuid.uuid4().hex[:12]
    _recheck_id.set(rid)
    return rid


def _add_recheck_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: add recheck_id to every log entry."""
    event_dict["recheck_id"] = get_recheck_id()
    return event_dict


_HANDLER_NAME = "corral"


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Configure structured logging.

    Records from structlog loggers and from plain ``logging.getLogger``
    loggers go through the same processors, so both carry ``recheck_id``
    and are rendered the same way. Calling this again replaces the handler
    installed by the previous call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
        stream: Where to write (default stderr).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_recheck_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    renderer: list[Any]
    if format == "json":
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
