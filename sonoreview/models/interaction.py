# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interaction schemas.

A clip interaction is a tagged variant on ``role``: learner submissions
carry a diagnostic path and readiness flag, reviewer submissions carry
quality and final-diagnosis verdicts. Both map onto the single wide
``clip_interaction`` row.
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DiagnosticPath(BaseModel):
    """Learner's walk through the diagnostic tree.

    Every level is optional; callers are responsible for keeping the ids
    within one protocol.
    """

    model_config = ConfigDict(extra="forbid")

    protocol_key: str | None = None
    window_id: int | None = None
    finding_id: int | None = None
    possible_diagnosis_id: int | None = None
    subdiagnosis_id: int | None = None
    sub_subdiagnosis_id: int | None = None
    third_order_diagnosis_id: int | None = None


class InteractionCreated(BaseModel):
    """Acknowledgement of a stored submission."""

    id: int
    clip_id: int
    role: Literal["learner", "reviewer"]
    created_at: datetime


class LearnerInteraction(BaseModel):
    """Learner submission with node names resolved from the diagnostic tree."""

    role: Literal["learner"] = "learner"
    id: int
    clip_id: int
    user_id: int
    created_at: datetime
    protocol_key: str | None = None
    window_id: int | None = None
    window_name: str | None = None
    finding_id: int | None = None
    finding_name: str | None = None
    possible_diagnosis_id: int | None = None
    possible_diagnosis_name: str | None = None
    subdiagnosis_id: int | None = None
    subdiagnosis_name: str | None = None
    sub_subdiagnosis_id: int | None = None
    sub_subdiagnosis_name: str | None = None
    third_order_diagnosis_id: int | None = None
    third_order_diagnosis_name: str | None = None
    comment: str | None = None
    ready: bool | None = None


class ReviewerInteraction(BaseModel):
    """Reviewer submission with vocabulary names resolved."""

    role: Literal["reviewer"] = "reviewer"
    id: int
    clip_id: int
    user_id: int
    created_at: datetime
    image_quality_id: int | None = None
    image_quality_name: str | None = None
    final_diagnosis_id: int | None = None
    final_diagnosis_name: str | None = None
    comment: str | None = None


Interaction = Annotated[
    Union[LearnerInteraction, ReviewerInteraction],
    Field(discriminator="role"),
]


class ClipInteractions(BaseModel):
    """Every submission stored for a clip, oldest first.

    A role that has not submitted is simply absent.
    """

    clip_id: int
    interactions: list[Interaction] = Field(default_factory=list)

    @property
    def learner(self) -> LearnerInteraction | None:
        """Learner submission, if any."""
        return next(
            (i for i in self.interactions if isinstance(i, LearnerInteraction)), None
        )

    @property
    def reviewer(self) -> ReviewerInteraction | None:
        """Reviewer submission, if any."""
        return next(
            (i for i in self.interactions if isinstance(i, ReviewerInteraction)), None
        )

    def by_role(self) -> dict[str, dict]:
        """Payload keyed by role; absent roles have no key at all."""
        return {i.role: i.model_dump() for i in self.interactions}
