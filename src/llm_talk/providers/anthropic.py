"""Anthropic (Claude) messages API adapter."""

from __future__ import annotations

from typing import Any

from llm_talk.core.constants import ProviderTag
from llm_talk.providers.base import BaseHTTPProvider, ContextMessage, ProviderResponse, TokenUsage


ANTHROPIC_VERSION = "2023-06-01"
CLAUDE_MAX_TEMPERATURE = 1.0


class ClaudeProvider(BaseHTTPProvider):
    """Adapter for POST {base_url}/messages.

    The messages API takes system text separately and requires strictly
    alternating user/assistant turns, so context is folded accordingly.
    """

    provider_tag = ProviderTag.CLAUDE.value

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com/v1",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self._api_key
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def _build_request(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        context: list[ContextMessage],
    ) -> tuple[str, dict[str, Any]]:
        system_parts = [m.get("content", "") for m in context if m.get("role") == "system"]
        turns = [m for m in context if m.get("role") != "system"]
        turns.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": model,
            "messages": fold_turns(turns),
            "temperature": min(temperature, CLAUDE_MAX_TEMPERATURE),
            "max_tokens": max_tokens,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        return "/messages", payload

    def _parse_response(self, data: dict[str, Any], model: str) -> ProviderResponse:
        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        input_tokens = int(usage.get("input_tokens") or 0)
        output_tokens = int(usage.get("output_tokens") or 0)

        return ProviderResponse(
            text=text,
            token_usage=TokenUsage(
                input=input_tokens,
                output=output_tokens,
                total=input_tokens + output_tokens,
            ),
            finish_reason=data.get("stop_reason") or "unknown",
            model=data.get("model") or model,
            metadata={"response_id": data.get("id")},
        )

    def _extract_error(self, body: dict[str, Any]) -> tuple[str | None, str | None]:
        # {"type": "error", "error": {"type": "rate_limit_error", "message": "..."}}
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message"), error.get("type")
        return super()._extract_error(body)


def fold_turns(turns: list[ContextMessage]) -> list[dict[str, str]]:
    """Merge consecutive same-role turns and ensure the first turn is a user turn."""
    folded: list[dict[str, str]] = []
    for turn in turns:
        role = "assistant" if turn.get("role") == "assistant" else "user"
        content = turn.get("content", "")
        if folded and folded[-1]["role"] == role:
            folded[-1]["content"] = f"{folded[-1]['content']}\n\n{content}"
        else:
            folded.append({"role": role, "content": content})

    if folded and folded[0]["role"] != "user":
        folded.insert(0, {"role": "user", "content": "(conversation so far)"})
    return folded
