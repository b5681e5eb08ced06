"""OpenAI and Perplexity adapters.

Both speak the OpenAI chat-completions wire format; Perplexity only
differs in base URL, authentication key and pricing.
"""

from __future__ import annotations

from typing import Any

from llm_talk.core.constants import ProviderTag
from llm_talk.providers.base import BaseHTTPProvider, ContextMessage, ProviderResponse, TokenUsage


class OpenAIProvider(BaseHTTPProvider):
    """Adapter for POST {base_url}/chat/completions."""

    provider_tag = ProviderTag.OPENAI.value

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 120.0,
        organization: str | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: OpenAI API key.
            base_url: API base URL.
            timeout: Request timeout in seconds.
            organization: Sent as OpenAI-Organization only when non-empty.
        """
        self.organization = organization.strip() if organization and organization.strip() else None
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        return headers

    def _build_request(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        context: list[ContextMessage],
    ) -> tuple[str, dict[str, Any]]:
        messages = [
            {"role": m.get("role", "user"), "content": m.get("content", "")}
            for m in context
        ]
        messages.append({"role": "user", "content": prompt})
        return "/chat/completions", {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }

    def _parse_response(self, data: dict[str, Any], model: str) -> ProviderResponse:
        choices = data.get("choices") or []
        choice = choices[0] if choices else {}
        text = (choice.get("message") or {}).get("content") or ""

        usage = data.get("usage") or {}
        prompt_tokens = int(usage.get("prompt_tokens") or 0)
        completion_tokens = int(usage.get("completion_tokens") or 0)
        total_tokens = int(usage.get("total_tokens") or prompt_tokens + completion_tokens)

        return ProviderResponse(
            text=text,
            token_usage=TokenUsage(
                input=prompt_tokens,
                output=completion_tokens,
                total=total_tokens,
            ),
            finish_reason=choice.get("finish_reason") or "unknown",
            model=data.get("model") or model,
            metadata={"response_id": data.get("id"), "created": data.get("created")},
        )


class PerplexityProvider(OpenAIProvider):
    """Perplexity's OpenAI-compatible endpoint."""

    provider_tag = ProviderTag.PERPLEXITY.value

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.perplexity.ai",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)
