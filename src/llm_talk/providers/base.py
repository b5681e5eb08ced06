"""Model provider contract and shared HTTP adapter.

Every vendor adapter satisfies ModelProvider:

    send(prompt, model, temperature, max_tokens, context_messages)
        -> ProviderResponse{text, token_usage, finish_reason}
    estimate_tokens(text) -> int
    cost_per_token(model) -> CostPerToken

BaseHTTPProvider implements the request lifecycle once (validation,
lazy httpx client, timing, error normalization, usage fallback); vendors
only describe their payload and response shapes.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from llm_talk.core.constants import MAX_TEMPERATURE, MIN_TEMPERATURE, Timeouts
from llm_talk.core.logging import get_logger
from llm_talk.providers.errors import (
    GenericProviderError,
    ProviderError,
    classify_provider_error,
)
from llm_talk.providers.pricing import CostPerToken, cost_per_token
from llm_talk.providers.tokens import estimate_for_provider


logger = get_logger(__name__)

# {"role": "system" | "user" | "assistant", "content": str}
ContextMessage = dict[str, str]


@dataclass(frozen=True)
class TokenUsage:
    """Token usage for one call."""

    input: int = 0
    output: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"input": self.input, "output": self.output, "total": self.total}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TokenUsage:
        """Accept both input/output and prompt/completion key styles."""
        data = data or {}
        input_tokens = int(data.get("input", data.get("prompt", 0)) or 0)
        output_tokens = int(data.get("output", data.get("completion", 0)) or 0)
        total = int(data.get("total", input_tokens + output_tokens) or 0)
        return cls(input=input_tokens, output=output_tokens, total=total)


@dataclass
class ProviderResponse:
    """Normalized provider response.

    Attributes:
        text: Generated text.
        token_usage: Input/output/total tokens (estimated when absent).
        finish_reason: Vendor stop reason, "unknown" if missing.
        model: Model that actually served the request.
        latency_ms: Wall-clock duration of the HTTP call.
        usage_estimated: True when token_usage came from estimate_tokens.
        metadata: Vendor-specific extras (response id, etc.).
    """

    text: str
    token_usage: TokenUsage
    finish_reason: str = "unknown"
    model: str | None = None
    latency_ms: int = 0
    usage_estimated: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ModelProvider(Protocol):
    """Capability interface the orchestrator depends on.

    Implementations must raise only ProviderError subtypes from send().
    """

    @property
    def provider(self) -> str:
        """Provider tag this adapter serves."""
        ...

    async def send(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        context_messages: list[ContextMessage] | None = None,
    ) -> ProviderResponse:
        """Run one completion."""
        ...

    def estimate_tokens(self, text: str) -> int:
        """Fallback token estimate for text."""
        ...

    def cost_per_token(self, model: str | None = None) -> CostPerToken:
        """Per-token pricing for analytics."""
        ...


class BaseHTTPProvider(ABC):
    """Shared HTTP lifecycle for vendor adapters.

    Subclasses implement _build_request, _parse_response and, when the
    vendor's error body differs from {"error": {"message", "code"}},
    _extract_error.

    Attributes:
        base_url: Vendor API base URL.
        timeout: Request timeout in seconds.
    """

    provider_tag: str = ""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = Timeouts.HTTP_PROVIDER,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Vendor API key.
            base_url: Vendor API base URL.
            timeout: Request timeout in seconds.
        """
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def provider(self) -> str:
        return self.provider_tag

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": "LLM-Talk/1.0",
        }

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
            )
        return self._client

    async def close(self) -> None:
        """Release HTTP client resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def send(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        context_messages: list[ContextMessage] | None = None,
    ) -> ProviderResponse:
        """Run one completion and normalize the result.

        Raises:
            ProviderError: Any fault, already classified.
        """
        self._validate_request(prompt, model, temperature, max_tokens)
        context = list(context_messages or [])
        path, payload = self._build_request(prompt, model, temperature, max_tokens, context)

        logger.debug(
            "provider_request",
            provider=self.provider_tag,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            prompt_length=len(prompt),
            context_length=len(context),
        )

        started = time.perf_counter()
        try:
            response = await self._get_client().post(path, json=payload)
        except httpx.TimeoutException as e:
            raise GenericProviderError(
                f"{self.provider_tag} request timed out",
                self.provider_tag,
                model,
                status_code=408,
                retryable=True,
                cause=e,
            ) from e
        except httpx.TransportError as e:
            raise GenericProviderError(
                f"{self.provider_tag} network error: {e}",
                self.provider_tag,
                model,
                status_code=None,
                retryable=True,
                cause=e,
            ) from e
        latency_ms = int((time.perf_counter() - started) * 1000)

        if response.status_code >= 400:
            error = self._error_from_response(response, model)
            logger.warning(
                "provider_error",
                provider=self.provider_tag,
                model=model,
                status=response.status_code,
                error_type=type(error).__name__,
                retryable=error.retryable,
            )
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise GenericProviderError(
                f"{self.provider_tag} returned a non-JSON response",
                self.provider_tag,
                model,
                status_code=response.status_code,
                retryable=True,
                cause=e,
            ) from e

        if not isinstance(data, dict):
            raise GenericProviderError(
                f"{self.provider_tag} returned an unexpected response body",
                self.provider_tag,
                model,
                status_code=response.status_code,
                retryable=True,
            )
        try:
            result = self._parse_response(data, model)
        except (AttributeError, TypeError, ValueError, KeyError, IndexError) as e:
            raise GenericProviderError(
                f"{self.provider_tag} returned a malformed response: {e}",
                self.provider_tag,
                model,
                status_code=response.status_code,
                retryable=True,
                cause=e,
            ) from e
        result.latency_ms = latency_ms
        if result.token_usage.total == 0:
            result.token_usage = self._estimate_usage(prompt, context, result.text)
            result.usage_estimated = True

        logger.info(
            "provider_response",
            provider=self.provider_tag,
            model=result.model or model,
            tokens=result.token_usage.total,
            finish_reason=result.finish_reason,
            latency_ms=latency_ms,
        )
        return result

    def estimate_tokens(self, text: str) -> int:
        return estimate_for_provider(text, self.provider_tag)

    def cost_per_token(self, model: str | None = None) -> CostPerToken:
        return cost_per_token(self.provider_tag, model)

    # ------------------------------------------------------------------
    # Vendor hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _build_request(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        context: list[ContextMessage],
    ) -> tuple[str, dict[str, Any]]:
        """Return (path, JSON payload) for the completion call."""

    @abstractmethod
    def _parse_response(self, data: dict[str, Any], model: str) -> ProviderResponse:
        """Convert the vendor's JSON body into a ProviderResponse."""

    def _extract_error(self, body: dict[str, Any]) -> tuple[str | None, str | None]:
        """Return (message, code) from an OpenAI-style error body."""
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message"), error.get("code") or error.get("type")
        if isinstance(error, str):
            return error, None
        return None, None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_request(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> None:
        if not prompt or not prompt.strip():
            raise GenericProviderError(
                "Prompt cannot be empty", self.provider_tag, model, retryable=False
            )
        if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
            raise GenericProviderError(
                f"Temperature must be between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}",
                self.provider_tag,
                model,
                retryable=False,
            )
        if max_tokens <= 0:
            raise GenericProviderError(
                "Max tokens must be positive", self.provider_tag, model, retryable=False
            )

    def _error_from_response(self, response: httpx.Response, model: str) -> ProviderError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message, code = self._extract_error(body if isinstance(body, dict) else {})
        return classify_provider_error(
            provider=self.provider_tag,
            model=model,
            status_code=response.status_code,
            message=message or response.text or f"HTTP {response.status_code}",
            error_code=code,
            headers=response.headers,
        )

    def _estimate_usage(
        self,
        prompt: str,
        context: list[ContextMessage],
        text: str,
    ) -> TokenUsage:
        input_tokens = self.estimate_tokens(prompt) + sum(
            self.estimate_tokens(m.get("content", "")) for m in context
        )
        output_tokens = self.estimate_tokens(text)
        return TokenUsage(
            input=input_tokens,
            output=output_tokens,
            total=input_tokens + output_tokens,
        )


__all__ = [
    "BaseHTTPProvider",
    "ContextMessage",
    "ModelProvider",
    "ProviderResponse",
    "TokenUsage",
]
