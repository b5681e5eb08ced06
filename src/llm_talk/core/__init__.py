"""Core module - Configuration, logging, exceptions, and shared constants.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - Exception classes: LLMTalkError, SessionValidationError, etc.
"""

from llm_talk.core.config import Settings, get_settings
from llm_talk.core.exceptions import (
    AlreadyProcessingError,
    LLMTalkError,
    PersistenceError,
    ProviderUnavailableError,
    SessionCompleteError,
    SessionNotFoundError,
    SessionNotRunningError,
    SessionStateError,
    SessionValidationError,
)
from llm_talk.core.logging import configure_logging, get_logger


__all__ = [
    # Exceptions
    "AlreadyProcessingError",
    "LLMTalkError",
    "PersistenceError",
    "ProviderUnavailableError",
    "SessionCompleteError",
    "SessionNotFoundError",
    "SessionNotRunningError",
    "SessionStateError",
    "SessionValidationError",
    # Configuration
    "Settings",
    # Logging
    "configure_logging",
    "get_logger",
    "get_settings",
]
