# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Taxonomy domain package.

This package provides read access to the protocol taxonomy:
- Protocol rubrics
- Diagnostic tree navigation
- Reference vocabularies
"""

from sonoreview.domains.taxonomy.service import (
    ProtocolNotFoundError,
    TaxonomyService,
    TaxonomyServiceError,
)

__all__ = [
    "TaxonomyService",
    "TaxonomyServiceError",
    "ProtocolNotFoundError",
]
