"""
Configuration Management for Ledger Assistant

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Settings only provide DEFAULTS.
The live provider selection and credentials belong to the ConfigStore,
which the application loads at startup and mutates on save.
Nothing here is read on the hot path except transport limits.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SYSTEM_PROMPT = (
    "You are a professional financial advisor who is good at analysing "
    "personal finance data and giving practical money advice. "
    "Answer concisely and professionally, in the language of the question."
)


class GatewaySettings(BaseSettings):
    """Default primary provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        extra="ignore"
    )

    provider: str = Field(
        default="deepseek",
        description="Primary provider identifier"
    )
    api_key: str = Field(
        default="",
        description="Primary provider API key"
    )
    model: str = Field(
        default="deepseek-chat",
        description="Model identifier"
    )
    enabled: bool = Field(
        default=False,
        description="Whether AI features are switched on"
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Base URL for providers with templated endpoints (Azure)"
    )
    max_tokens: int = Field(
        default=1024,
        ge=16,
        le=8192,
        description="Maximum tokens in response"
    )


class VisionSettings(BaseSettings):
    """Default vision provider configuration (image recognition)."""

    model_config = SettingsConfigDict(
        env_prefix="VISION_",
        extra="ignore"
    )

    provider: str = Field(
        default="zhipu",
        description="Vision provider identifier"
    )
    api_key: str = Field(
        default="",
        description="Vision provider API key"
    )
    model: str = Field(
        default="glm-4v",
        description="Vision model identifier"
    )
    enabled: bool = Field(
        default=False,
        description="Whether image recognition is switched on"
    )


class TransportSettings(BaseSettings):
    """
    HTTP transport limits.

    The gateway never retries on its own unless max_attempts is raised.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRANSPORT_",
        extra="ignore"
    )

    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Deadline for one provider request (connect + each read)"
    )
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Attempts for non-streaming calls (1 = no retry)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="Fixed system instruction sent with every chat call"
    )

    # Extraction
    default_confidence: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Confidence assigned when the model gives none"
    )
    max_source_text_chars: int = Field(
        default=8000,
        ge=100,
        description="Longest source text embedded in an extraction prompt"
    )

    # Fallback chat
    simulated_stream_delay_seconds: float = Field(
        default=0.02,
        ge=0.0,
        le=1.0,
        description="Delay between characters of a canned reply"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gateway(self) -> GatewaySettings:
        return GatewaySettings()

    @property
    def vision(self) -> VisionSettings:
        return VisionSettings()

    @property
    def transport(self) -> TransportSettings:
        return TransportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings groups load.

    Returns a dict of {setting_name: is_valid} plus
    `<name>_error` entries for the failures.
    """
    results = {}
    settings = get_settings()

    for name in ("gateway", "vision", "transport", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
