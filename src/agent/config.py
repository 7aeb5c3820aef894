"""Agent configuration with environment variable loading.

Pydantic-based configuration for the Agno-backed text generator.
Supports OpenAI (and OpenAI-compatible APIs via custom base URL) and Google Gemini.
"""

import os
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "google": "gemini-2.5-flash",
}


class Provider(str, Enum):
    """Model providers the generator can talk to."""

    OPENAI = "openai"
    GOOGLE = "google"


def _env_api_key() -> str:
    for name in ("LLM_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"):
        value = os.getenv(name)
        if value:
            return value
    return ""


class AgentConfig(BaseModel):
    """Configuration for the Agno text generator.

    Attributes:
        provider: Model provider (openai or google).
        api_key: API key for model access.
        base_url: API base URL for OpenAI-compatible providers (None for default).
        model_name: Model identifier; defaults per provider when unset.
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = creative).
        max_tokens: Maximum tokens in generated response.
    """

    provider: Provider = Field(
        default_factory=lambda: os.getenv("LLM_PROVIDER", "openai").strip().lower(),
        validate_default=True,
        description="Model provider",
    )
    api_key: str = Field(
        default_factory=_env_api_key,
        validate_default=True,
        description="API key for LLM provider",
    )
    base_url: str | None = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL") or None,
        description="API base URL (None for provider default)",
    )
    model_name: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", ""),
        description="Model to use",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    max_tokens: int = Field(
        default=1024,
        ge=1,
        le=128000,
        description="Maximum tokens in generated response",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate that API key is provided and non-empty."""
        if not v or not v.strip():
            raise ValueError(
                "API key required. Set LLM_API_KEY, OPENAI_API_KEY or GEMINI_API_KEY in .env"
            )
        return v.strip()

    @model_validator(mode="after")
    def default_model_name(self) -> "AgentConfig":
        """Pick the provider's default model when none is configured."""
        if not self.model_name.strip():
            self.model_name = DEFAULT_MODELS[self.provider.value]
        return self


def get_agent_config() -> AgentConfig:
    """Create agent configuration from environment.

    Returns:
        Configured AgentConfig instance.

    Raises:
        ValueError: If no API key is set.
    """
    return AgentConfig()
