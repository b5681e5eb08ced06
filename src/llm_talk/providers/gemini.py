"""Google Gemini generateContent adapter."""

from __future__ import annotations

from typing import Any

from llm_talk.core.constants import ProviderTag
from llm_talk.providers.base import BaseHTTPProvider, ContextMessage, ProviderResponse, TokenUsage


class GeminiProvider(BaseHTTPProvider):
    """Adapter for POST {base_url}/models/{model}:generateContent.

    Gemini names the assistant role "model" and takes system text as
    systemInstruction.
    """

    provider_tag = ProviderTag.GEMINI.value

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["x-goog-api-key"] = self._api_key
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
        contents = [
            {
                "role": "model" if m.get("role") == "assistant" else "user",
                "parts": [{"text": m.get("content", "")}],
            }
            for m in context
            if m.get("role") != "system"
        ]
        contents.append({"role": "user", "parts": [{"text": prompt}]})

        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system_parts:
            payload["systemInstruction"] = {
                "parts": [{"text": "\n\n".join(system_parts)}],
            }
        return f"/models/{model}:generateContent", payload

    def _parse_response(self, data: dict[str, Any], model: str) -> ProviderResponse:
        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)

        usage = data.get("usageMetadata") or {}
        input_tokens = int(usage.get("promptTokenCount") or 0)
        output_tokens = int(usage.get("candidatesTokenCount") or 0)
        total_tokens = int(usage.get("totalTokenCount") or input_tokens + output_tokens)

        return ProviderResponse(
            text=text,
            token_usage=TokenUsage(
                input=input_tokens,
                output=output_tokens,
                total=total_tokens,
            ),
            finish_reason=candidate.get("finishReason") or "unknown",
            model=data.get("modelVersion") or model,
        )

    def _extract_error(self, body: dict[str, Any]) -> tuple[str | None, str | None]:
        # {"error": {"code": 429, "message": "...", "status": "RESOURCE_EXHAUSTED"}}
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message"), error.get("status")
        return super()._extract_error(body)
