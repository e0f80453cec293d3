# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

This package contains seed data for initializing the taxonomy store:
- Image quality and final diagnosis vocabularies
- Protocol rubrics and diagnostic trees, from YAML definitions
"""

from sonoreview.infrastructure.database.seeds.taxonomy import (
    FINDINGS,
    ConfigurationGapError,
    SeedReport,
    TaxonomyDefinitionError,
    load_taxonomy_definition,
    resolve_or_create,
    seed_taxonomy,
)

__all__ = [
    "FINDINGS",
    "ConfigurationGapError",
    "SeedReport",
    "TaxonomyDefinitionError",
    "load_taxonomy_definition",
    "resolve_or_create",
    "seed_taxonomy",
]
