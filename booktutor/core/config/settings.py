# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with sensible defaults.
The Settings class aggregates all subsettings; a cached instance is
provided via get_settings(). Components that talk to the LLM provider
receive LLMSettings explicitly instead of reading globals.

Example:
    >>> from booktutor.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.tutor.token_budget
    100000
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM provider configuration using LiteLLM.

    Any OpenAI-compatible endpoint works; LiteLLM routes on the model
    prefix (e.g. ``openai/grok-2-latest`` with a custom api_base).

    Attributes:
        model: Model identifier in LiteLLM format.
        api_base: Base URL of the chat-completion endpoint.
        api_key: API key for the endpoint.
        request_timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts handed to LiteLLM.
        temperature: Sampling temperature.
    """

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        extra="ignore",
        populate_by_name=True,
    )

    model: str = "openai/grok-2-latest"
    api_base: str | None = Field(
        default=None,
        validation_alias="OPENAI_BASE_URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    request_timeout: float = 60.0
    max_retries: int = 3
    temperature: float = 0.7

    def provider_params(self) -> dict[str, str]:
        """Build the provider parameters passed straight to acompletion().

        Returns:
            Dictionary with api_base and/or api_key if configured.
        """
        params: dict[str, str] = {}
        if self.api_base:
            params["api_base"] = self.api_base
        if self.api_key is not None:
            params["api_key"] = self.api_key.get_secret_value()
        return params


class DatabaseSettings(BaseSettings):
    """Relational storage configuration.

    Attributes:
        url: Async SQLAlchemy URL.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    url: str = "sqlite+aiosqlite:///./booktutor.db"
    echo: bool = False


class TutorSettings(BaseSettings):
    """Tutor agent behaviour.

    Attributes:
        token_budget: Maximum estimated tokens of one request to the model.
        eviction_policy: Which end of the conversation tail is evicted when
            the window is over budget.
        event_buffer_size: Capacity of the bounded listener channel.
        max_tool_rounds: Upper bound of model calls within one turn.
        cache_max_size: Number of live agents kept by the agent cache.
        stream: Use the streaming chat-completion form.
        library_path: YAML file with the books served by the API.
    """

    model_config = SettingsConfigDict(
        env_prefix="TUTOR_",
        extra="ignore",
    )

    token_budget: int = Field(default=100_000, gt=0)
    eviction_policy: Literal["newest", "oldest"] = "newest"
    event_buffer_size: int = Field(default=100, gt=0)
    max_tool_rounds: int = Field(default=16, gt=0)
    cache_max_size: int = Field(default=1024, gt=0)
    stream: bool = True
    library_path: str | None = None


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        sse_keepalive_seconds: Interval of SSE keep-alive comments.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3000
    sse_keepalive_seconds: float = 10.0


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        llm: LLM provider settings.
        database: Database settings.
        tutor: Tutor agent settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    llm: LLMSettings = Field(default_factory=LLMSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    tutor: TutorSettings = Field(default_factory=TutorSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production without an LLM API key.
        """
        if self.environment == "production" and self.llm.api_key is None:
            raise ValueError(
                "LLM API key must be configured in production. "
                "Set OPENAI_API_KEY environment variable."
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
