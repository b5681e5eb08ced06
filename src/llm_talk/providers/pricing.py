"""Model catalog: context limits and pricing per provider.

Prices are USD per 1K tokens, matching how vendors publish them.
CostPerToken converts to per-token values for analytics.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelInfo:
    """Static description of one model.

    Attributes:
        provider: Provider tag.
        model: Model identifier sent to the API.
        max_tokens: Context window size.
        input_per_1k: USD per 1K input tokens.
        output_per_1k: USD per 1K output tokens.
    """

    provider: str
    model: str
    max_tokens: int
    input_per_1k: float
    output_per_1k: float


@dataclass(frozen=True)
class CostPerToken:
    """Per-token USD prices."""

    input: float
    output: float

    @property
    def blended(self) -> float:
        """Mean of input and output price, used for rough estimates."""
        return (self.input + self.output) / 2


_CATALOG: tuple[ModelInfo, ...] = (
    # OpenAI
    ModelInfo("openai", "gpt-3.5-turbo", 16385, 0.0005, 0.0015),
    ModelInfo("openai", "gpt-4", 8192, 0.03, 0.06),
    ModelInfo("openai", "gpt-4-turbo", 128000, 0.01, 0.03),
    ModelInfo("openai", "gpt-4o", 128000, 0.005, 0.015),
    ModelInfo("openai", "gpt-4o-mini", 128000, 0.00015, 0.0006),
    # Anthropic
    ModelInfo("claude", "claude-3-haiku-20240307", 200000, 0.00025, 0.00125),
    ModelInfo("claude", "claude-3-sonnet-20240229", 200000, 0.003, 0.015),
    ModelInfo("claude", "claude-3-opus-20240229", 200000, 0.015, 0.075),
    ModelInfo("claude", "claude-3-5-sonnet-20241022", 200000, 0.003, 0.015),
    # Google
    ModelInfo("gemini", "gemini-1.5-flash", 1048576, 0.000075, 0.0003),
    ModelInfo("gemini", "gemini-1.5-pro", 2097152, 0.00125, 0.005),
    ModelInfo("gemini", "gemini-1.0-pro", 32768, 0.0005, 0.0015),
    # Perplexity
    ModelInfo("perplexity", "llama-3.1-sonar-small-128k-online", 127072, 0.0002, 0.0002),
    ModelInfo("perplexity", "llama-3.1-sonar-large-128k-online", 127072, 0.001, 0.001),
    ModelInfo("perplexity", "llama-3.1-sonar-huge-128k-online", 127072, 0.005, 0.005),
)

MODEL_CATALOG: dict[tuple[str, str], ModelInfo] = {
    (info.provider, info.model): info for info in _CATALOG
}

# Used when a model is missing from the catalog
DEFAULT_PRICING_PER_1K: dict[str, tuple[float, float]] = {
    "openai": (0.03, 0.06),
    "claude": (0.015, 0.075),
    "gemini": (0.00125, 0.005),
    "perplexity": (0.001, 0.001),
}


def get_model_info(provider: str, model: str) -> ModelInfo | None:
    """Look up a model in the catalog."""
    return MODEL_CATALOG.get((provider, model))


def models_for(provider: str) -> list[str]:
    """List catalog model ids for a provider."""
    return [info.model for info in _CATALOG if info.provider == provider]


def cost_per_token(provider: str, model: str | None = None) -> CostPerToken:
    """Per-token prices for a model, falling back to the provider default."""
    info = get_model_info(provider, model) if model else None
    if info is not None:
        input_1k, output_1k = info.input_per_1k, info.output_per_1k
    else:
        input_1k, output_1k = DEFAULT_PRICING_PER_1K.get(provider, (0.0, 0.0))
    return CostPerToken(input=input_1k / 1000, output=output_1k / 1000)


def calculate_cost(input_tokens: int, output_tokens: int, pricing: CostPerToken) -> float:
    """USD cost of one call."""
    return input_tokens * pricing.input + output_tokens * pricing.output
