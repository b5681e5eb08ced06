"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
Fakes: tests/fakes/fake_providers.py stands in for vendor adapters.
"""

import pytest

from llm_talk.conversation.models import Participant
from llm_talk.conversation.orchestrator import SessionOrchestrator
from llm_talk.core.config import Settings
from llm_talk.persistence.memory import InMemoryChangeFeed, InMemorySessionStore
from llm_talk.providers.registry import ProviderRegistry
from tests.fakes.fake_providers import FakeModelProvider


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults and no real credentials."""
    return Settings(
        _env_file=None,
        environment="development",
        log_level="DEBUG",
        openai_api_key=None,
        anthropic_api_key=None,
        google_api_key=None,
        perplexity_api_key=None,
        default_context_window=10,
        default_max_tokens=4000,
        prompt_history_size=5,
    )


# ============================================================================
# Provider Fixtures
# ============================================================================

@pytest.fixture
def openai_fake() -> FakeModelProvider:
    return FakeModelProvider("openai")


@pytest.fixture
def claude_fake() -> FakeModelProvider:
    return FakeModelProvider("claude")


@pytest.fixture
def gemini_fake() -> FakeModelProvider:
    return FakeModelProvider("gemini")


@pytest.fixture
def registry(
    openai_fake: FakeModelProvider,
    claude_fake: FakeModelProvider,
    gemini_fake: FakeModelProvider,
) -> ProviderRegistry:
    """Registry with fakes for openai, claude and gemini (no perplexity)."""
    registry = ProviderRegistry()
    registry.register("openai", openai_fake)
    registry.register("claude", claude_fake)
    registry.register("gemini", gemini_fake)
    return registry


# ============================================================================
# Persistence Fixtures
# ============================================================================

@pytest.fixture
def feed() -> InMemoryChangeFeed:
    return InMemoryChangeFeed()


@pytest.fixture
def store(feed: InMemoryChangeFeed) -> InMemorySessionStore:
    return InMemorySessionStore(feed)


# ============================================================================
# Session Fixtures
# ============================================================================

@pytest.fixture
def participants() -> list[Participant]:
    """Three participants in turn order A (openai), B (claude), C (gemini)."""
    return [
        Participant(name="A", provider="openai", model="gpt-4o"),
        Participant(name="B", provider="claude", model="claude-3-5-sonnet-20241022"),
        Participant(name="C", provider="gemini", model="gemini-1.5-pro"),
    ]


@pytest.fixture
def orchestrator(
    registry: ProviderRegistry,
    store: InMemorySessionStore,
    test_settings: Settings,
) -> SessionOrchestrator:
    return SessionOrchestrator(registry, store, test_settings)
