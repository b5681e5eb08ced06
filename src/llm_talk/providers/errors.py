"""Provider error taxonomy.

Every adapter maps its vendor-native faults into these types; the
orchestrator only ever handles this taxonomy, which keeps providers
substitutable.

    ProviderError
    ├── RateLimitError        retryable
    ├── TokenLimitError       not retryable (prompt/window must shrink)
    ├── AuthenticationError   not retryable (configuration fault)
    └── GenericProviderError  retryable iff 5xx / 408 / 429 / network
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from llm_talk.core.exceptions import LLMTalkError


RETRYABLE_STATUS_CODES = frozenset({408, 429})

_RATE_LIMIT_PHRASES = ("rate limit", "too many requests", "quota exceeded")
_TOKEN_LIMIT_PHRASES = ("token limit", "context length", "maximum tokens", "token count")
_AUTH_PHRASES = ("api key", "unauthorized", "authentication", "invalid key")

_RATE_LIMIT_CODES = frozenset({
    "rate_limit_exceeded",
    "insufficient_quota",
    "rate_limit_error",
    "RESOURCE_EXHAUSTED",
})
_TOKEN_LIMIT_CODES = frozenset({"context_length_exceeded"})
_AUTH_CODES = frozenset({
    "invalid_api_key",
    "mismatched_organization",
    "authentication_error",
    "permission_error",
    "UNAUTHENTICATED",
    "PERMISSION_DENIED",
})

_RETRY_AFTER_RE = re.compile(r"retry after (\d+) seconds?", re.IGNORECASE)
_MAX_TOKENS_RE = re.compile(r"maximum context length is (\d+)", re.IGNORECASE)
_REQUESTED_TOKENS_RE = re.compile(r"(?:requested|resulted in) (\d+) tokens", re.IGNORECASE)


class ProviderError(LLMTalkError):
    """Base class for all normalized provider faults.

    Attributes:
        provider: Provider tag (e.g. "openai").
        model: Model identifier the call targeted.
        status_code: HTTP status, None for network-level failures.
        retryable: Whether the same turn may be retried unchanged.
    """

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        status_code: int | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.retryable = retryable
        self.cause = cause
        if cause:
            self.__cause__ = cause
        super().__init__(message)


class RateLimitError(ProviderError):
    """Provider throttled the request. Always retryable."""

    code = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        retry_after_seconds: int | None = None,
        status_code: int | None = 429,
        cause: Exception | None = None,
    ) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, provider, model, status_code, True, cause)


class TokenLimitError(ProviderError):
    """Prompt plus context exceeded the model's window."""

    code = "TOKEN_LIMIT"

    def __init__(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        requested: int | None = None,
        max_tokens: int | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.requested = requested
        self.max_tokens = max_tokens
        super().__init__(message, provider, model, status_code, False, cause)


class AuthenticationError(ProviderError):
    """Credential missing, invalid, or lacking permission."""

    code = "AUTHENTICATION_FAILED"

    def __init__(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, provider, model, status_code, False, cause)


class GenericProviderError(ProviderError):
    """Any other provider fault; retryability follows the status code."""

    code = "PROVIDER_ERROR"


def is_retryable_status(status_code: int | None) -> bool:
    """5xx, 408, 429 and network failures (no status) are retryable."""
    if status_code is None:
        return True
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


def extract_retry_after(
    headers: Mapping[str, str] | None,
    message: str,
) -> int | None:
    """Read retry-after from headers, falling back to the error message."""
    if headers:
        value = headers.get("retry-after")
        if value is not None:
            try:
                return int(float(value))
            except ValueError:
                return None

    match = _RETRY_AFTER_RE.search(message or "")
    if match:
        return int(match.group(1))
    return None


def _parse_token_limits(message: str) -> tuple[int | None, int | None]:
    max_match = _MAX_TOKENS_RE.search(message)
    requested_match = _REQUESTED_TOKENS_RE.search(message)
    return (
        int(requested_match.group(1)) if requested_match else None,
        int(max_match.group(1)) if max_match else None,
    )


def classify_provider_error(
    provider: str,
    model: str | None,
    status_code: int | None,
    message: str,
    error_code: str | None = None,
    headers: Mapping[str, str] | None = None,
    cause: Exception | None = None,
) -> ProviderError:
    """Map a vendor fault onto the provider error taxonomy.

    Checks run in order: rate limit, token limit, authentication, generic.

    Args:
        provider: Provider tag.
        model: Target model.
        status_code: HTTP status, None for network failures.
        message: Vendor error message.
        error_code: Vendor error code or type, if any.
        headers: Response headers (for retry-after).
        cause: Original exception to chain.

    Returns:
        The normalized ProviderError subtype.
    """
    lowered = (message or "").lower()
    detail = f"{provider} API error: {message or 'Unknown error'}"

    if (
        status_code == 429
        or error_code in _RATE_LIMIT_CODES
        or any(phrase in lowered for phrase in _RATE_LIMIT_PHRASES)
    ):
        return RateLimitError(
            detail,
            provider,
            model,
            retry_after_seconds=extract_retry_after(headers, message),
            status_code=status_code,
            cause=cause,
        )

    if error_code in _TOKEN_LIMIT_CODES or any(
        phrase in lowered for phrase in _TOKEN_LIMIT_PHRASES
    ):
        requested, max_tokens = _parse_token_limits(message)
        return TokenLimitError(
            detail,
            provider,
            model,
            requested=requested,
            max_tokens=max_tokens,
            status_code=status_code,
            cause=cause,
        )

    if (
        status_code in (401, 403)
        or error_code in _AUTH_CODES
        or any(phrase in lowered for phrase in _AUTH_PHRASES)
    ):
        return AuthenticationError(detail, provider, model, status_code, cause)

    return GenericProviderError(
        detail,
        provider,
        model,
        status_code=status_code,
        retryable=is_retryable_status(status_code),
        cause=cause,
    )


__all__ = [
    "AuthenticationError",
    "GenericProviderError",
    "ProviderError",
    "RateLimitError",
    "TokenLimitError",
    "classify_provider_error",
    "extract_retry_after",
    "is_retryable_status",
]
