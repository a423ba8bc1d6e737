"""Logging setup for the drill CLI.

structlog renders everything.  Library modules log through plain
``logging.getLogger(__name__)``; ``ProcessorFormatter`` feeds those
records through the same processor chain, so a single run produces one
uniform stream on stderr.  Every line carries the run's ``trace_id``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from drill.core.ids import new_id

# Chatty at INFO: one line per request.
_NOISY_LOGGERS = ("httpx", "httpcore")


def new_trace_id() -> str:
    """Start a new trace for this run and bind it to the log context."""
    tid = new_id()
    structlog.contextvars.bind_contextvars(trace_id=tid)
    return tid


def get_trace_id() -> str:
    """Current trace ID, or ``""`` before ``new_trace_id`` was called."""
    return structlog.contextvars.get_contextvars().get("trace_id", "")


def setup_logging(level: str = "WARNING", format: str = "console") -> None:
    """Install the stderr handler and configure structlog.

    ``format`` is ``"json"`` for one JSON object per line, anything else
    for the coloured console renderer.  Safe to call more than once; the
    previous root handlers are replaced.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: Any
    if format == "json":
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
