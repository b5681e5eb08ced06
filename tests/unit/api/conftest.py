"""Fixtures for API route tests.

The app is built with create_app() and fake providers; entering the
TestClient context runs the lifespan so app.state is wired.
"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from llm_talk.core.config import Settings
from llm_talk.main import create_app
from llm_talk.providers.registry import ProviderRegistry


@pytest.fixture
def client(registry: ProviderRegistry, test_settings: Settings) -> Iterator[TestClient]:
    app = create_app(registry=registry, settings=test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def start_body() -> dict:
    return {
        "topic": "efficient machine dialogue",
        "scenario": "protocol-evolution",
        "participants": [
            {"name": "A", "provider": "openai", "model": "gpt-4o"},
            {"name": "B", "provider": "claude", "model": "claude-3-5-sonnet-20241022"},
            {"name": "C", "provider": "gemini", "model": "gemini-1.5-pro", "temperature": 0.4},
        ],
        "maxIterations": 3,
    }
