"""Custom exceptions for the LLM-Talk service.

All exceptions are namespaced to avoid shadowing Python builtins and
pydantic's ValidationError. Provider faults live in
llm_talk.providers.errors and share the LLMTalkError base.

Retry policy is carried by the exception type, never decided by callers
inspecting messages:
- SessionValidationError: bad caller input, never retried
- AlreadyProcessingError: a turn is in flight, back off and retry
- SessionCompleteError / SessionNotRunningError: re-query status
- PersistenceError: always fatal to the current turn
"""

from typing import Any


class LLMTalkError(Exception):
    """Base exception for all LLM-Talk errors.

    Attributes:
        code: Machine-readable error code surfaced by the API layer.
        retryable: Whether the caller may retry the same operation.
    """

    code: str = "LLM_TALK_ERROR"
    retryable: bool = False

    def __init__(self, message: str, session_id: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Error description
            session_id: Session the error relates to, if any
        """
        self.session_id = session_id
        super().__init__(message)


class SessionValidationError(LLMTalkError):
    """Raised when caller input fails validation.

    Surfaced verbatim to the caller; never retried.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str,
        value: Any | None = None,
        session_id: str | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: The field that failed validation
            value: The invalid value
            session_id: Session the error relates to, if any
        """
        self.field = field
        self.value = value
        super().__init__(message, session_id)


class SessionNotFoundError(LLMTalkError):
    """Raised when a session id is unknown to the orchestrator and the store."""

    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found", session_id)


class SessionStateError(LLMTalkError):
    """Base class for state-machine violations."""

    code = "SESSION_STATE_ERROR"


class AlreadyProcessingError(SessionStateError):
    """Raised when a turn is requested while another is in flight."""

    code = "ALREADY_PROCESSING"
    retryable = True

    def __init__(self, session_id: str | None = None) -> None:
        super().__init__("Already processing a message. Please wait.", session_id)


class SessionCompleteError(SessionStateError):
    """Raised when a turn is requested after max iterations were reached."""

    code = "SESSION_COMPLETE"

    def __init__(self, session_id: str | None = None, max_iterations: int | None = None) -> None:
        self.max_iterations = max_iterations
        super().__init__("Session has reached maximum iterations.", session_id)


class SessionNotRunningError(SessionStateError):
    """Raised when an operation requires a running session."""

    code = "SESSION_NOT_RUNNING"

    def __init__(self, status: str, session_id: str | None = None) -> None:
        self.status = status
        super().__init__(f"Session is not running (status: {status})", session_id)


class ProviderUnavailableError(LLMTalkError):
    """Raised when a participant's provider has no configured adapter."""

    code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"Provider {provider} is not available. Check API key configuration."
        )


class PersistenceError(LLMTalkError):
    """Raised when the persistence collaborator fails.

    Wraps the collaborator's fault; the original exception is chained as
    ``__cause__`` for diagnostics.
    """

    code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        operation: str,
        cause: Exception | None = None,
        session_id: str | None = None,
    ) -> None:
        """Initialize persistence error.

        Args:
            message: Error description
            operation: Store operation that failed
            cause: Original exception raised by the store
            session_id: Session the error relates to
        """
        self.operation = operation
        self.cause = cause
        if cause:
            self.__cause__ = cause
        super().__init__(message, session_id)
