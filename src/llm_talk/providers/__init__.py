"""Model provider adapters, error taxonomy and registry."""

from llm_talk.providers.anthropic import ClaudeProvider
from llm_talk.providers.base import (
    BaseHTTPProvider,
    ContextMessage,
    ModelProvider,
    ProviderResponse,
    TokenUsage,
)
from llm_talk.providers.errors import (
    AuthenticationError,
    GenericProviderError,
    ProviderError,
    RateLimitError,
    TokenLimitError,
    classify_provider_error,
)
from llm_talk.providers.gemini import GeminiProvider
from llm_talk.providers.openai import OpenAIProvider, PerplexityProvider
from llm_talk.providers.pricing import CostPerToken, calculate_cost, cost_per_token
from llm_talk.providers.registry import CredentialCheck, ProviderRegistry, check_credentials


__all__ = [
    "AuthenticationError",
    "BaseHTTPProvider",
    "ClaudeProvider",
    "ContextMessage",
    "CostPerToken",
    "CredentialCheck",
    "GeminiProvider",
    "GenericProviderError",
    "ModelProvider",
    "OpenAIProvider",
    "PerplexityProvider",
    "ProviderError",
    "ProviderRegistry",
    "ProviderResponse",
    "RateLimitError",
    "TokenLimitError",
    "TokenUsage",
    "calculate_cost",
    "check_credentials",
    "classify_provider_error",
    "cost_per_token",
]
