"""Fake httpx responses for provider adapter tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock


def make_response(
    status_code: int = 200,
    body: Any = None,
    headers: dict[str, str] | None = None,
    text: str = "",
) -> MagicMock:
    """MagicMock exposing the httpx.Response attributes the adapters read."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.headers = headers or {}
    response.text = text
    return response
