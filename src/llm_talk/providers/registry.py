"""Provider registry.

Maps provider tags to ModelProvider instances. The registry is built once
from Settings at application start-up and handed to every orchestrator;
there is no module-level global.
"""

from __future__ import annotations

from dataclasses import dataclass

from llm_talk.core.config import Settings
from llm_talk.core.constants import KNOWN_PROVIDERS, ProviderTag
from llm_talk.core.exceptions import ProviderUnavailableError
from llm_talk.core.logging import get_logger
from llm_talk.providers.anthropic import ClaudeProvider
from llm_talk.providers.base import ModelProvider
from llm_talk.providers.gemini import GeminiProvider
from llm_talk.providers.openai import OpenAIProvider, PerplexityProvider


logger = get_logger(__name__)


class ProviderRegistry:
    """Provider adapters keyed by tag."""

    def __init__(self) -> None:
        self._providers: dict[str, ModelProvider] = {}

    def register(self, tag: str, provider: ModelProvider) -> None:
        """Register (or replace) the adapter for a tag."""
        self._providers[tag] = provider
        logger.debug("provider_registered", provider=tag)

    def get(self, tag: str) -> ModelProvider:
        """Get the adapter for a tag.

        Raises:
            ProviderUnavailableError: No adapter is configured for the tag.
        """
        provider = self._providers.get(tag)
        if provider is None:
            raise ProviderUnavailableError(tag)
        return provider

    def has(self, tag: str) -> bool:
        return tag in self._providers

    def tags(self) -> list[str]:
        return sorted(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    async def close_all(self) -> None:
        """Close adapters that hold network resources.

        Every adapter gets its close() call; a failure is logged and does not
        stop the remaining adapters from closing.
        """
        for tag, provider in self._providers.items():
            close = getattr(provider, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(
                    "provider_close_failed",
                    provider=tag,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderRegistry:
        """Build a registry with one adapter per configured API key."""
        registry = cls()
        timeout = settings.provider_timeout_seconds

        if settings.openai_api_key:
            registry.register(
                ProviderTag.OPENAI.value,
                OpenAIProvider(
                    api_key=settings.openai_api_key.get_secret_value(),
                    base_url=settings.openai_base_url,
                    timeout=timeout,
                    organization=settings.openai_organization,
                ),
            )
        if settings.anthropic_api_key:
            registry.register(
                ProviderTag.CLAUDE.value,
                ClaudeProvider(
                    api_key=settings.anthropic_api_key.get_secret_value(),
                    base_url=settings.anthropic_base_url,
                    timeout=timeout,
                ),
            )
        if settings.google_api_key:
            registry.register(
                ProviderTag.GEMINI.value,
                GeminiProvider(
                    api_key=settings.google_api_key.get_secret_value(),
                    base_url=settings.gemini_base_url,
                    timeout=timeout,
                ),
            )
        if settings.perplexity_api_key:
            registry.register(
                ProviderTag.PERPLEXITY.value,
                PerplexityProvider(
                    api_key=settings.perplexity_api_key.get_secret_value(),
                    base_url=settings.perplexity_base_url,
                    timeout=timeout,
                ),
            )

        logger.info("provider_registry_built", providers=registry.tags())
        return registry


# =============================================================================
# Credential heuristics
# =============================================================================

@dataclass(frozen=True)
class CredentialRule:
    env_var: str
    prefix: str
    min_length: int


CREDENTIAL_RULES: dict[str, CredentialRule] = {
    ProviderTag.OPENAI.value: CredentialRule("OPENAI_API_KEY", "sk-", 20),
    ProviderTag.CLAUDE.value: CredentialRule("ANTHROPIC_API_KEY", "sk-ant-", 20),
    ProviderTag.PERPLEXITY.value: CredentialRule("PERPLEXITY_API_KEY", "pplx-", 20),
    ProviderTag.GEMINI.value: CredentialRule("GOOGLE_API_KEY", "", 30),
}


@dataclass(frozen=True)
class CredentialCheck:
    """Outcome of a provider credential check."""

    provider: str
    configured: bool
    valid: bool
    message: str


def _key_for(provider: str, settings: Settings) -> str | None:
    secret = {
        ProviderTag.OPENAI.value: settings.openai_api_key,
        ProviderTag.CLAUDE.value: settings.anthropic_api_key,
        ProviderTag.GEMINI.value: settings.google_api_key,
        ProviderTag.PERPLEXITY.value: settings.perplexity_api_key,
    }.get(provider)
    return secret.get_secret_value() if secret else None


def check_credentials(provider: str, settings: Settings) -> CredentialCheck:
    """Check that a provider's key is present and superficially well formed.

    No network call is made; this only applies prefix and length rules.

    Raises:
        KeyError: provider is not a known tag.
    """
    if provider not in KNOWN_PROVIDERS:
        raise KeyError(provider)

    rule = CREDENTIAL_RULES[provider]
    key = _key_for(provider, settings)
    if not key:
        return CredentialCheck(
            provider=provider,
            configured=False,
            valid=False,
            message=f"{rule.env_var} not configured",
        )

    if not key.startswith(rule.prefix) or len(key) <= rule.min_length:
        return CredentialCheck(
            provider=provider,
            configured=True,
            valid=False,
            message=f"{rule.env_var} format appears invalid",
        )

    return CredentialCheck(
        provider=provider,
        configured=True,
        valid=True,
        message=f"{provider} API key is configured",
    )


__all__ = [
    "CREDENTIAL_RULES",
    "CredentialCheck",
    "ProviderRegistry",
    "check_credentials",
]
