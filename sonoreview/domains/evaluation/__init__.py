# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation domain package.

This package provides scored review functionality including:
- Rubric attempts with clamped responses
- Attempt listing and totals
- Study evaluation forms
"""

from sonoreview.domains.evaluation.service import (
    EvaluationService,
    EvaluationServiceError,
    InvalidResponsesError,
    InvalidStudyScoreError,
    StudyEvaluationExistsError,
    StudyEvaluationNotFoundError,
    StudyEvaluationPermissionError,
    clamp_score,
    parse_responses,
)

__all__ = [
    "EvaluationService",
    "EvaluationServiceError",
    "InvalidResponsesError",
    "InvalidStudyScoreError",
    "StudyEvaluationExistsError",
    "StudyEvaluationNotFoundError",
    "StudyEvaluationPermissionError",
    "clamp_score",
    "parse_responses",
]
