"""Structured logging for the LLM-Talk service.

Console output in development, JSON lines in production and staging.
Every entry carries the service name and environment. Request handlers
bind the session being worked on with session_context(), so orchestrator,
provider and store logs emitted during that request share session_id and
iteration without passing them around. Provider credentials never reach
the output.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from llm_talk.core.config import Settings, get_settings


SECRET_KEYS = frozenset({"api_key", "authorization", "x-api-key", "x-goog-api-key"})

# sk-..., sk-ant-..., pplx-... and Google AIza... keys
_SECRET_PATTERN = re.compile(r"\b(sk-ant-|sk-|pplx-|AIza)[A-Za-z0-9_\-]{8,}")

REDACTED = "[redacted]"


def service_context(settings: Settings) -> Processor:
    """Processor stamping service and environment onto each entry."""
    service = settings.service_name
    environment = settings.environment

    def add_service_context(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service_context


def redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask credential fields and key-shaped substrings.

    Provider error bodies are logged verbatim and some vendors echo the
    key they rejected.
    """
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _SECRET_PATTERN.sub(lambda m: m.group(1) + REDACTED, value)
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Settings to read level and environment from; defaults
            to get_settings().
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        service_context(settings),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # Vendor request lines would otherwise log every turn twice
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@contextmanager
def session_context(session_id: str | None, **fields: Any) -> Iterator[None]:
    """Bind session_id (plus any extra fields) for the enclosed block.

    Example:
        ```python
        with session_context(session_id, operation="send_message"):
            await orchestrator.send_next_message(session_id)
        ```
    """
    bound = {"session_id": session_id, **fields} if session_id else dict(fields)
    with structlog.contextvars.bound_contextvars(**bound):
        yield


@contextmanager
def turn_context(iteration: int, speaker: str) -> Iterator[None]:
    """Bind the turn being produced; provider and store logs pick it up."""
    with structlog.contextvars.bound_contextvars(iteration=iteration, speaker=speaker):
        yield


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Example:
        ```python
        from llm_talk.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("turn_completed", tokens=120)
        ```
    """
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "get_logger",
    "redact_secrets",
    "service_context",
    "session_context",
    "turn_context",
]
