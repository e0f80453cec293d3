# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interaction domain package.

This package provides per-clip submissions:
- One learner diagnostic submission per clip
- One reviewer verdict per clip
"""

from sonoreview.domains.interaction.service import (
    DuplicateSubmissionError,
    InteractionService,
    InteractionServiceError,
)

__all__ = [
    "InteractionService",
    "InteractionServiceError",
    "DuplicateSubmissionError",
]
