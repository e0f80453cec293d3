# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation models.

- EvaluationAttempt: one reviewer's scored pass over a clip
- EvaluationResponse: the clamped score for one rubric item in an attempt
- StudyEvaluation: the single overall verdict on a study
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sonoreview.infrastructure.database.models.base import Base
from sonoreview.utils.datetime import utc_now


class EvaluationAttempt(Base):
    """Scored review pass. Several attempts per clip are kept as history."""

    __tablename__ = "evaluation_attempt"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    reviewer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    responses: Mapped[list[EvaluationResponse]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
    )


class EvaluationResponse(Base):
    """Score for one rubric item, always stored within [0, item.max_score]."""

    __tablename__ = "evaluation_response"
    __table_args__ = (
        UniqueConstraint(
            "attempt_id", "protocol_item_id", name="uq_evaluation_response_attempt_id_item_id"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("evaluation_attempt.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Linked by identity only; rubric edits never touch stored scores.
    item_id: Mapped[int] = mapped_column(
        "protocol_item_id", ForeignKey("protocol_item.id"), nullable=False
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)

    attempt: Mapped[EvaluationAttempt] = relationship(back_populates="responses")


class StudyEvaluation(Base):
    """Overall reviewer verdict for a study, one per study."""

    __tablename__ = "evaluation_form"
    __table_args__ = (UniqueConstraint("study_id", name="uq_evaluation_form_study_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    study_id: Mapped[int] = mapped_column(Integer, nullable=False)
    reviewer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    feedback_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
