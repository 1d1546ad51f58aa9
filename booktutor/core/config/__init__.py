# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for BookTutor.

- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading YAML configuration files

Example:
    >>> from booktutor.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.environment
    'development'
"""

from booktutor.core.config.settings import (
    APISettings,
    DatabaseSettings,
    LLMSettings,
    Settings,
    TutorSettings,
    clear_settings_cache,
    get_settings,
)
from booktutor.core.config.yaml_loader import YAMLLoadError, load_yaml

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "LLMSettings",
    "DatabaseSettings",
    "TutorSettings",
    "APISettings",
    # YAML utilities
    "load_yaml",
    "YAMLLoadError",
]
