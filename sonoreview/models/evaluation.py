# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation schemas.

Rubric scores are validated for shape only: each response must carry a
real number. Range is enforced later by clamping to the item's maximum.
"""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator


class ResponseInput(BaseModel):
    """One raw rubric score as sent by the scoring form.

    Attributes:
        item_key: Rubric item key (``itemKey`` on the wire).
        score: Raw score; booleans and numeric strings are rejected.
    """

    model_config = ConfigDict(populate_by_name=True)

    item_key: str | None = Field(default=None, alias="itemKey")
    score: StrictInt | StrictFloat

    @field_validator("score")
    @classmethod
    def _finite(cls, value: float) -> float:
        # Integers of any size are finite; clamping brings them into range.
        if isinstance(value, int):
            return value
        if not math.isfinite(value):
            raise ValueError("score must be a finite number")
        return value


class AttemptCreated(BaseModel):
    """Identity of a freshly recorded attempt."""

    attempt_id: int
    submitted_at: datetime


class AttemptSummary(BaseModel):
    """Attempt row as listed for a clip.

    Attributes:
        id: Attempt id.
        submitted_at: Submission time.
        total_score: Sum of stored response scores, 0 when there are none.
        reviewer_name: Reviewer's full name, if the account is known.
        comment: Reviewer's free-text comment.
    """

    id: int
    submitted_at: datetime
    total_score: float = 0
    reviewer_name: str | None = None
    comment: str | None = None


class ResponseRecord(BaseModel):
    """Stored score for one rubric item."""

    model_config = ConfigDict(from_attributes=True)

    item_id: int
    score: float


class StudyEvaluationRecord(BaseModel):
    """Overall verdict on a study."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    study_id: int
    reviewer_id: int
    score: float
    feedback_summary: str | None = None
    submitted_at: datetime
