# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for SonoReview.

- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading declarative taxonomy files

Example:
    >>> from sonoreview.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.taxonomy.seed_on_startup
    True
"""

from sonoreview.core.config.settings import (
    DatabaseSettings,
    Settings,
    TaxonomySettings,
    clear_settings_cache,
    get_settings,
)
from sonoreview.core.config.yaml_loader import (
    YAMLLoadError,
    load_yaml,
    load_yaml_directory,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "TaxonomySettings",
    # YAML utilities
    "load_yaml",
    "load_yaml_directory",
    "YAMLLoadError",
]
