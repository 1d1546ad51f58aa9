# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from booktutor.core.config.settings import (
    APISettings,
    DatabaseSettings,
    LLMSettings,
    Settings,
    TutorSettings,
    clear_settings_cache,
    get_settings,
)


@pytest.mark.unit
class TestLLMSettings:
    """Tests for LLMSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = LLMSettings()

        assert settings.model == "openai/grok-2-latest"
        assert settings.api_base is None
        assert settings.api_key is None
        assert settings.max_retries == 3

    def test_reads_openai_environment_variables(self) -> None:
        """Test that endpoint and key come from the OpenAI variables."""
        env = {
            "OPENAI_BASE_URL": "https://api.x.ai/v1",
            "OPENAI_API_KEY": "secret",
            "LLM_MODEL": "openai/grok-3",
        }

        with patch.dict(os.environ, env, clear=True):
            settings = LLMSettings()

        assert settings.api_base == "https://api.x.ai/v1"
        assert settings.api_key is not None
        assert settings.api_key.get_secret_value() == "secret"
        assert settings.model == "openai/grok-3"

    def test_provider_params(self) -> None:
        """Test provider params only include configured values."""
        settings = LLMSettings(api_base="http://localhost:8000/v1", api_key="k")  # type: ignore[arg-type]

        assert settings.provider_params() == {
            "api_base": "http://localhost:8000/v1",
            "api_key": "k",
        }

    def test_provider_params_empty(self) -> None:
        """Test provider params without endpoint or key."""
        with patch.dict(os.environ, {}, clear=True):
            settings = LLMSettings()

        assert settings.provider_params() == {}


@pytest.mark.unit
class TestTutorSettings:
    """Tests for TutorSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = TutorSettings()

        assert settings.token_budget == 100_000
        assert settings.eviction_policy == "newest"
        assert settings.event_buffer_size == 100
        assert settings.stream is True
        assert settings.library_path is None

    def test_loads_from_environment(self) -> None:
        """Test that settings load from environment variables."""
        env = {"TUTOR_TOKEN_BUDGET": "2000", "TUTOR_EVICTION_POLICY": "oldest"}

        with patch.dict(os.environ, env, clear=True):
            settings = TutorSettings()

        assert settings.token_budget == 2000
        assert settings.eviction_policy == "oldest"

    def test_rejects_unknown_policy(self) -> None:
        """Test that only known eviction policies are accepted."""
        with pytest.raises(ValidationError):
            TutorSettings(eviction_policy="random")  # type: ignore[arg-type]

    def test_rejects_non_positive_budget(self) -> None:
        """Test that the token budget must be positive."""
        with pytest.raises(ValidationError):
            TutorSettings(token_budget=0)


@pytest.mark.unit
class TestSettings:
    """Tests for the aggregated Settings."""

    def test_subsettings_defaults(self) -> None:
        """Test that subsettings are created with defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert isinstance(settings.llm, LLMSettings)
        assert isinstance(settings.database, DatabaseSettings)
        assert isinstance(settings.tutor, TutorSettings)
        assert isinstance(settings.api, APISettings)
        assert settings.database.url.startswith("sqlite+aiosqlite://")
        assert settings.api.port == 3000
        assert settings.is_development

    def test_production_requires_api_key(self) -> None:
        """Test that production settings require an LLM API key."""
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)  # type: ignore[call-arg]

        assert "LLM API key must be configured" in str(exc_info.value)

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns the same instance until cleared."""
        clear_settings_cache()
        first = get_settings()

        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first
        clear_settings_cache()
