# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clip interaction model.

One wide row per (clip, role). Learner rows carry the diagnostic path and
readiness flag; reviewer rows carry image quality, final diagnosis and the
reviewer comment. Columns belonging to the other role stay NULL.

Diagnostic tree references are identity-only: the core does not check that
all ids belong to the same protocol.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from sonoreview.infrastructure.database.models.base import Base
from sonoreview.utils.datetime import utc_now

LEARNER_ROLE = "learner"
REVIEWER_ROLE = "reviewer"


class ClipInteraction(Base):
    """A single role's diagnostic submission for a clip."""

    __tablename__ = "clip_interaction"
    __table_args__ = (
        UniqueConstraint("clip_id", "role", name="uq_clip_interaction_clip_id_role"),
        CheckConstraint(f"role IN ('{LEARNER_ROLE}', '{REVIEWER_ROLE}')", name="role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[str] = mapped_column(String(15), nullable=False)

    # Learner
    protocol_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    window_id: Mapped[int | None] = mapped_column(
        ForeignKey("protocol_window.id"), nullable=True
    )
    finding_id: Mapped[int | None] = mapped_column(ForeignKey("finding.id"), nullable=True)
    possible_diagnosis_id: Mapped[int | None] = mapped_column(
        ForeignKey("possible_diagnosis.id"), nullable=True
    )
    subdiagnosis_id: Mapped[int | None] = mapped_column(
        ForeignKey("subdiagnosis.id"), nullable=True
    )
    sub_subdiagnosis_id: Mapped[int | None] = mapped_column(
        ForeignKey("sub_subdiagnosis.id"), nullable=True
    )
    third_order_diagnosis_id: Mapped[int | None] = mapped_column(
        ForeignKey("third_order_diagnosis.id"), nullable=True
    )
    learner_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    learner_ready: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Reviewer
    image_quality_id: Mapped[int | None] = mapped_column(
        ForeignKey("image_quality.id"), nullable=True
    )
    final_diagnosis_id: Mapped[int | None] = mapped_column(
        ForeignKey("final_diagnosis.id"), nullable=True
    )
    reviewer_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
