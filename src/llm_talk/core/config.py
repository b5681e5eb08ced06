"""Application configuration using Pydantic Settings.

Environment variables are loaded with the LLM_TALK_ prefix. Provider API
keys are additionally accepted under their vendor names (OPENAI_API_KEY,
ANTHROPIC_API_KEY, GOOGLE_API_KEY, PERPLEXITY_API_KEY).
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    A provider counts as configured when its API key is set; the provider
    registry is built from these values at application start-up.
    """

    # Service configuration
    service_name: str = "llm-talk"
    port: int = 8090
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Provider credentials
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_TALK_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI API key",
    )
    openai_organization: str | None = Field(
        default=None,
        description="Optional OpenAI organization; only sent when non-empty",
    )
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_TALK_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
        description="Anthropic (Claude) API key",
    )
    google_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_TALK_GOOGLE_API_KEY", "GOOGLE_API_KEY"),
        description="Google (Gemini) API key",
    )
    perplexity_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_TALK_PERPLEXITY_API_KEY", "PERPLEXITY_API_KEY"),
        description="Perplexity API key",
    )

    # Provider endpoints
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1",
        description="Anthropic API base URL",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API base URL",
    )
    perplexity_base_url: str = Field(
        default="https://api.perplexity.ai",
        description="Perplexity API base URL",
    )
    provider_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for a single provider call",
    )

    # Turn defaults
    default_context_window: int = Field(
        default=10,
        ge=0,
        description="Trailing messages sent to the provider as context",
    )
    default_max_tokens: int = Field(
        default=4000,
        gt=0,
        description="Completion token budget per turn",
    )
    prompt_history_size: int = Field(
        default=5,
        ge=0,
        description="Trailing messages rendered inside the prompt text",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_TALK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        """True when error causes must be hidden from API responses."""
        return self.environment in ("production", "staging")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
