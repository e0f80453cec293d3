# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interaction service for per-clip learner and reviewer submissions.

This module provides the InteractionService class for:
- Learner diagnostic submissions (path through the diagnostic tree)
- Reviewer verdicts (image quality, final diagnosis, comment)
- Reading both submissions of a clip with node names resolved

Each clip accepts at most one submission per role. The store's
(clip_id, role) constraint decides between concurrent writers; the loser
gets DuplicateSubmissionError and the first row is kept unchanged.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sonoreview.infrastructure.database.connection import DatabaseError
from sonoreview.infrastructure.database.models import (
    LEARNER_ROLE,
    REVIEWER_ROLE,
    ClipInteraction,
    DiagnosticWindow,
    FinalDiagnosis,
    Finding,
    ImageQuality,
    PossibleDiagnosis,
    Subdiagnosis,
    SubSubdiagnosis,
    ThirdOrderDiagnosis,
)
from sonoreview.models.interaction import (
    ClipInteractions,
    DiagnosticPath,
    InteractionCreated,
    LearnerInteraction,
    ReviewerInteraction,
)
from sonoreview.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class InteractionServiceError(Exception):
    """Base exception for interaction service errors."""

    pass


class DuplicateSubmissionError(InteractionServiceError):
    """Raised when the role already submitted for the clip."""

    def __init__(self, clip_id: int, role: str) -> None:
        self.clip_id = clip_id
        self.role = role
        super().__init__(f"Clip {clip_id} already has a {role} submission")


class InteractionService:
    """Service for clip interactions.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize interaction service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def submit_learner_interaction(
        self,
        clip_id: int,
        user_id: int,
        path: DiagnosticPath,
        comment: str | None = None,
        ready: bool | None = None,
    ) -> InteractionCreated:
        """Store a learner's diagnostic submission for a clip.

        Args:
            clip_id: Clip identifier.
            user_id: Learner user ID.
            path: Diagnostic tree selection.
            comment: Optional learner comment.
            ready: Whether the learner marked the clip ready for review.

        Returns:
            Created interaction.

        Raises:
            DuplicateSubmissionError: If the learner role already submitted.
            DatabaseError: If the store fails.
        """
        interaction = ClipInteraction(
            clip_id=clip_id,
            user_id=user_id,
            role=LEARNER_ROLE,
            **path.model_dump(),
            learner_comment=comment,
            learner_ready=ready,
            created_at=utc_now(),
        )
        return await self._insert(interaction)

    async def submit_reviewer_interaction(
        self,
        clip_id: int,
        user_id: int,
        image_quality_id: int | None = None,
        final_diagnosis_id: int | None = None,
        comment: str | None = None,
    ) -> InteractionCreated:
        """Store a reviewer's verdict for a clip.

        Raises:
            DuplicateSubmissionError: If the reviewer role already submitted.
            DatabaseError: If the store fails.
        """
        interaction = ClipInteraction(
            clip_id=clip_id,
            user_id=user_id,
            role=REVIEWER_ROLE,
            image_quality_id=image_quality_id,
            final_diagnosis_id=final_diagnosis_id,
            reviewer_comment=comment,
            created_at=utc_now(),
        )
        return await self._insert(interaction)

    async def get_interactions(self, clip_id: int) -> ClipInteractions:
        """Get every submission of a clip, oldest first, with names resolved.

        Args:
            clip_id: Clip identifier.

        Returns:
            Submissions present for the clip. Roles without one are absent.
        """
        stmt = (
            select(
                ClipInteraction,
                DiagnosticWindow.name.label("window_name"),
                Finding.name.label("finding_name"),
                PossibleDiagnosis.name.label("possible_diagnosis_name"),
                Subdiagnosis.name.label("subdiagnosis_name"),
                SubSubdiagnosis.name.label("sub_subdiagnosis_name"),
                ThirdOrderDiagnosis.name.label("third_order_diagnosis_name"),
                ImageQuality.name.label("image_quality_name"),
                FinalDiagnosis.name.label("final_diagnosis_name"),
            )
            .outerjoin(DiagnosticWindow, DiagnosticWindow.id == ClipInteraction.window_id)
            .outerjoin(Finding, Finding.id == ClipInteraction.finding_id)
            .outerjoin(
                PossibleDiagnosis, PossibleDiagnosis.id == ClipInteraction.possible_diagnosis_id
            )
            .outerjoin(Subdiagnosis, Subdiagnosis.id == ClipInteraction.subdiagnosis_id)
            .outerjoin(SubSubdiagnosis, SubSubdiagnosis.id == ClipInteraction.sub_subdiagnosis_id)
            .outerjoin(
                ThirdOrderDiagnosis,
                ThirdOrderDiagnosis.id == ClipInteraction.third_order_diagnosis_id,
            )
            .outerjoin(ImageQuality, ImageQuality.id == ClipInteraction.image_quality_id)
            .outerjoin(FinalDiagnosis, FinalDiagnosis.id == ClipInteraction.final_diagnosis_id)
            .where(ClipInteraction.clip_id == clip_id)
            .order_by(ClipInteraction.created_at, ClipInteraction.id)
        )

        result = await self.db.execute(stmt)
        interactions = []
        for row in result.all():
            interaction: ClipInteraction = row.ClipInteraction
            if interaction.role == LEARNER_ROLE:
                interactions.append(
                    LearnerInteraction(
                        id=interaction.id,
                        clip_id=interaction.clip_id,
                        user_id=interaction.user_id,
                        created_at=ensure_utc(interaction.created_at),
                        protocol_key=interaction.protocol_key,
                        window_id=interaction.window_id,
                        window_name=row.window_name,
                        finding_id=interaction.finding_id,
                        finding_name=row.finding_name,
                        possible_diagnosis_id=interaction.possible_diagnosis_id,
                        possible_diagnosis_name=row.possible_diagnosis_name,
                        subdiagnosis_id=interaction.subdiagnosis_id,
                        subdiagnosis_name=row.subdiagnosis_name,
                        sub_subdiagnosis_id=interaction.sub_subdiagnosis_id,
                        sub_subdiagnosis_name=row.sub_subdiagnosis_name,
                        third_order_diagnosis_id=interaction.third_order_diagnosis_id,
                        third_order_diagnosis_name=row.third_order_diagnosis_name,
                        comment=interaction.learner_comment,
                        ready=interaction.learner_ready,
                    )
                )
            else:
                interactions.append(
                    ReviewerInteraction(
                        id=interaction.id,
                        clip_id=interaction.clip_id,
                        user_id=interaction.user_id,
                        created_at=ensure_utc(interaction.created_at),
                        image_quality_id=interaction.image_quality_id,
                        image_quality_name=row.image_quality_name,
                        final_diagnosis_id=interaction.final_diagnosis_id,
                        final_diagnosis_name=row.final_diagnosis_name,
                        comment=interaction.reviewer_comment,
                    )
                )

        return ClipInteractions(clip_id=clip_id, interactions=interactions)

    async def _insert(self, interaction: ClipInteraction) -> InteractionCreated:
        """Insert a submission, mapping a (clip, role) violation to a conflict."""
        clip_id, role = interaction.clip_id, interaction.role
        self.db.add(interaction)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self._exists(clip_id, role):
                logger.info(
                    "Rejected duplicate submission: clip=%s, role=%s",
                    clip_id,
                    role,
                )
                raise DuplicateSubmissionError(clip_id, role) from e
            logger.error(
                "Failed to store interaction: clip=%s, role=%s, error=%s",
                clip_id,
                role,
                e,
            )
            raise DatabaseError("Failed to store interaction", e) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to store interaction: clip=%s, role=%s, error=%s",
                clip_id,
                role,
                e,
            )
            raise DatabaseError("Failed to store interaction", e) from e

        logger.info(
            "Stored interaction: id=%s, clip=%s, role=%s",
            interaction.id,
            interaction.clip_id,
            interaction.role,
        )

        return InteractionCreated(
            id=interaction.id,
            clip_id=interaction.clip_id,
            role=interaction.role,
            created_at=interaction.created_at,
        )

    async def _exists(self, clip_id: int, role: str) -> bool:
        existing = await self.db.scalar(
            select(ClipInteraction.id).where(
                ClipInteraction.clip_id == clip_id,
                ClipInteraction.role == role,
            )
        )
        return existing is not None
