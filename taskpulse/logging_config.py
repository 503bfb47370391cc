"""
Structured logging for TaskPulse (structlog over stdlib logging).

Console output for local runs, JSON lines when TASKPULSE_LOG_FORMAT=json.
Scheduler ticks bind a tick id into the context so every event logged while
the checks of one tick run can be grouped.

Usage:
    from taskpulse.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("notification_queued", notification_id=...)
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

LEVEL_ENV = "TASKPULSE_LOG_LEVEL"
FORMAT_ENV = "TASKPULSE_LOG_FORMAT"


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    level = level or os.environ.get(LEVEL_ENV, "INFO")
    if json_output is None:
        json_output = os.environ.get(FORMAT_ENV, "").lower() == "json"

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_tick_context(tick_id: int, manual: bool = False) -> None:
    """Attach the scheduler tick to every event logged until cleared."""
    structlog.contextvars.bind_contextvars(tick_id=tick_id, manual_tick=manual)


def clear_tick_context() -> None:
    structlog.contextvars.unbind_contextvars("tick_id", "manual_tick")


__all__ = ["get_logger", "setup_logging", "bind_tick_context", "clear_tick_context"]
