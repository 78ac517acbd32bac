"""
Structured logging for the live tracker.

Every component logs through structlog. A tracking pass binds the channel it
works on with `channel_log_context`, so probe and feed events emitted deeper in
the call stack carry `channel_id` without threading it through every call.
"""
from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from shared.config import get_settings

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "charset_normalizer")


def _renderer(log_format: str, colors: bool) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=colors)


def setup_logging(service_name: str, extra_context: dict[str, Any] | None = None) -> None:
    """
    Configure structured logging for a process embedding the tracker.

    Args:
        service_name: Identifier bound to every entry (e.g. "tracker").
        extra_context: Additional static context fields bound to every log entry.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    log_format = settings.log_format or ("console" if settings.environment.value == "dev" else "json")
    renderer = _renderer(log_format, colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    bound: dict[str, Any] = {"service": service_name}
    if settings.instance_id:
        bound["instance_id"] = settings.instance_id
    if extra_context:
        bound.update(extra_context)
    structlog.contextvars.bind_contextvars(**bound)


@contextmanager
def channel_log_context(channel_id: str, **extra: Any) -> Iterator[None]:
    """Bind `channel_id` (and any extra fields) to logs emitted inside the block."""
    with structlog.contextvars.bound_contextvars(channel_id=channel_id, **extra):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
