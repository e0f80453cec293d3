# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation service for scored review passes.

This module provides the EvaluationService class for:
- Recording scored attempts against a clip's protocol rubric
- Listing attempts with their total score
- Listing the stored responses of an attempt
- Study evaluation forms (one overall verdict per study)

Rubric scores are clamped to each item's range, never rejected. Malformed
response payloads are rejected before anything is written. Study scores
are the opposite: out-of-range values are refused.
"""

from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sonoreview.domains.taxonomy.service import TaxonomyService
from sonoreview.infrastructure.database.connection import DatabaseError
from sonoreview.infrastructure.database.models import (
    EvaluationAttempt,
    EvaluationResponse,
    ScoringItem,
    StudyEvaluation,
    User,
)
from sonoreview.models.evaluation import (
    AttemptCreated,
    AttemptSummary,
    ResponseInput,
    ResponseRecord,
    StudyEvaluationRecord,
)
from sonoreview.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

STUDY_SCORE_MIN = 1
STUDY_SCORE_MAX = 10

_responses_adapter = TypeAdapter(list[ResponseInput])


class EvaluationServiceError(Exception):
    """Base exception for evaluation service errors."""

    pass


class InvalidResponsesError(EvaluationServiceError):
    """Raised when the responses payload is not a list of numeric scores."""

    pass


class InvalidStudyScoreError(EvaluationServiceError):
    """Raised when a study score is not a number between 1 and 10."""

    pass


class StudyEvaluationNotFoundError(EvaluationServiceError):
    """Raised when study evaluation is not found."""

    pass


class StudyEvaluationExistsError(EvaluationServiceError):
    """Raised when the study already has an evaluation form."""

    pass


class StudyEvaluationPermissionError(EvaluationServiceError):
    """Raised when a reviewer edits another reviewer's evaluation."""

    pass


def clamp_score(raw: float, max_score: int) -> float:
    """Clamp a raw score into ``[0, max_score]``.

    Fractional scores are kept as they are.
    """
    return float(max(0, min(max_score, raw)))


def parse_responses(responses: Any) -> list[ResponseInput]:
    """Validate a raw responses payload.

    Args:
        responses: Anything the caller sent as responses.

    Returns:
        Parsed responses.

    Raises:
        InvalidResponsesError: If the payload is not a list or an element
            lacks a numeric score.
    """
    try:
        return _responses_adapter.validate_python(responses)
    except ValidationError as e:
        raise InvalidResponsesError(f"Invalid responses format: {e}") from e


def _validate_study_score(score: Any) -> float:
    if isinstance(score, bool) or not isinstance(score, Real):
        raise InvalidStudyScoreError("Score must be a number between 1 and 10")
    if not isinstance(score, int) and not math.isfinite(score):
        raise InvalidStudyScoreError("Score must be a number between 1 and 10")
    if not STUDY_SCORE_MIN <= score <= STUDY_SCORE_MAX:
        raise InvalidStudyScoreError("Score must be a number between 1 and 10")
    return float(score)


class EvaluationService:
    """Service for rubric attempts and study evaluation forms.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize evaluation service.

        Args:
            db: Async database session.
        """
        self.db = db

    # =========================================================================
    # Attempts
    # =========================================================================

    async def create_attempt(
        self,
        clip_id: int,
        reviewer_id: int,
        responses: Any,
        comment: str | None = None,
        protocol_key: str | None = None,
    ) -> AttemptCreated:
        """Record a scored attempt and its responses atomically.

        Responses whose item key is unknown are skipped. Scores are clamped
        to the item's maximum. When an item is scored twice the last score
        is kept.

        Args:
            clip_id: Clip identifier.
            reviewer_id: Reviewer user ID.
            responses: List of ``{"itemKey": ..., "score": ...}`` entries.
            comment: Optional reviewer comment.
            protocol_key: Resolve item keys within this protocol only.

        Returns:
            Attempt ID and submission time.

        Raises:
            InvalidResponsesError: If the responses payload is malformed.
            DatabaseError: If the store fails.
        """
        parsed = parse_responses(responses)

        taxonomy = TaxonomyService(self.db)
        items: dict[str | None, ScoringItem | None] = {}
        scores: dict[int, float] = {}

        try:
            for response in parsed:
                if response.item_key not in items:
                    items[response.item_key] = (
                        await taxonomy.get_item(response.item_key, protocol_key)
                        if response.item_key
                        else None
                    )
                item = items[response.item_key]
                if item is None:
                    logger.debug(
                        "Skipping unknown rubric item: key=%s, clip=%s",
                        response.item_key,
                        clip_id,
                    )
                    continue
                scores[item.id] = clamp_score(response.score, item.max_score)

            attempt = EvaluationAttempt(
                clip_id=clip_id,
                reviewer_id=reviewer_id,
                comment=comment,
                submitted_at=utc_now(),
            )
            self.db.add(attempt)
            await self.db.flush()

            for item_id, score in scores.items():
                self.db.add(
                    EvaluationResponse(attempt_id=attempt.id, item_id=item_id, score=score)
                )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create attempt: clip=%s, error=%s", clip_id, e)
            raise DatabaseError("Failed to create attempt", e) from e

        logger.info(
            "Created attempt: id=%s, clip=%s, reviewer=%s, responses=%d",
            attempt.id,
            clip_id,
            reviewer_id,
            len(scores),
        )

        return AttemptCreated(attempt_id=attempt.id, submitted_at=attempt.submitted_at)

    async def list_attempts(self, clip_id: int) -> list[AttemptSummary]:
        """List a clip's attempts, newest first.

        Args:
            clip_id: Clip identifier.

        Returns:
            Attempts with total score and reviewer name.
        """
        total_score = func.coalesce(func.sum(EvaluationResponse.score), 0).label("total_score")
        reviewer_name = (User.first_name + " " + User.last_name).label("reviewer_name")

        stmt = (
            select(
                EvaluationAttempt.id,
                EvaluationAttempt.submitted_at,
                EvaluationAttempt.comment,
                total_score,
                reviewer_name,
            )
            .outerjoin(EvaluationResponse, EvaluationResponse.attempt_id == EvaluationAttempt.id)
            .outerjoin(User, User.id == EvaluationAttempt.reviewer_id)
            .where(EvaluationAttempt.clip_id == clip_id)
            .group_by(
                EvaluationAttempt.id,
                EvaluationAttempt.submitted_at,
                EvaluationAttempt.comment,
                User.first_name,
                User.last_name,
            )
            .order_by(EvaluationAttempt.submitted_at.desc(), EvaluationAttempt.id.desc())
        )

        result = await self.db.execute(stmt)
        return [
            AttemptSummary(
                id=row.id,
                submitted_at=ensure_utc(row.submitted_at),
                total_score=row.total_score,
                reviewer_name=row.reviewer_name,
                comment=row.comment,
            )
            for row in result.all()
        ]

    async def list_responses(self, attempt_id: int) -> list[ResponseRecord]:
        """List the stored scores of an attempt."""
        result = await self.db.execute(
            select(EvaluationResponse)
            .where(EvaluationResponse.attempt_id == attempt_id)
            .order_by(EvaluationResponse.id)
        )
        return [ResponseRecord.model_validate(r) for r in result.scalars().all()]

    # =========================================================================
    # Study evaluation forms
    # =========================================================================

    async def create_study_evaluation(
        self,
        study_id: int,
        reviewer_id: int,
        score: Any,
        feedback_summary: str | None = None,
    ) -> StudyEvaluationRecord:
        """Create the evaluation form for a study.

        Args:
            study_id: Study identifier.
            reviewer_id: Reviewer user ID.
            score: Overall score between 1 and 10.
            feedback_summary: Optional feedback.

        Returns:
            Created evaluation.

        Raises:
            InvalidStudyScoreError: If score is out of range or not a number.
            StudyEvaluationExistsError: If the study is already evaluated.
            DatabaseError: If the store fails.
        """
        value = _validate_study_score(score)

        if await self._study_evaluated(study_id):
            raise StudyEvaluationExistsError(f"Study {study_id} already has an evaluation")

        evaluation = StudyEvaluation(
            study_id=study_id,
            reviewer_id=reviewer_id,
            score=value,
            feedback_summary=feedback_summary,
            submitted_at=utc_now(),
        )
        self.db.add(evaluation)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self._study_evaluated(study_id):
                logger.info("Rejected duplicate study evaluation: study=%s", study_id)
                raise StudyEvaluationExistsError(
                    f"Study {study_id} already has an evaluation"
                ) from e
            logger.error(
                "Failed to create study evaluation: study=%s, error=%s", study_id, e
            )
            raise DatabaseError("Failed to create study evaluation", e) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to create study evaluation: study=%s, error=%s", study_id, e
            )
            raise DatabaseError("Failed to create study evaluation", e) from e

        logger.info(
            "Created study evaluation: id=%s, study=%s, reviewer=%s",
            evaluation.id,
            study_id,
            reviewer_id,
        )

        return StudyEvaluationRecord.model_validate(evaluation)

    async def update_study_evaluation(
        self,
        evaluation_id: int,
        reviewer_id: int,
        score: Any,
        feedback_summary: str | None = None,
    ) -> StudyEvaluationRecord:
        """Update score and feedback of an evaluation form.

        Raises:
            StudyEvaluationNotFoundError: If evaluation not found.
            StudyEvaluationPermissionError: If reviewer is not the author.
            InvalidStudyScoreError: If score is out of range or not a number.
            DatabaseError: If the store fails.
        """
        evaluation = await self.db.get(StudyEvaluation, evaluation_id)
        if evaluation is None:
            raise StudyEvaluationNotFoundError(f"Evaluation {evaluation_id} not found")

        if evaluation.reviewer_id != reviewer_id:
            raise StudyEvaluationPermissionError(
                f"Reviewer {reviewer_id} cannot edit evaluation {evaluation_id}"
            )

        evaluation.score = _validate_study_score(score)
        evaluation.feedback_summary = feedback_summary

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to update study evaluation: id=%s, error=%s", evaluation_id, e
            )
            raise DatabaseError("Failed to update study evaluation", e) from e

        logger.info("Updated study evaluation: id=%s, by=%s", evaluation_id, reviewer_id)

        return StudyEvaluationRecord.model_validate(evaluation)

    async def get_study_evaluation(self, study_id: int) -> StudyEvaluationRecord:
        """Get the evaluation form of a study.

        Raises:
            StudyEvaluationNotFoundError: If the study has no evaluation.
        """
        result = await self.db.execute(
            select(StudyEvaluation).where(StudyEvaluation.study_id == study_id)
        )
        evaluation = result.scalar_one_or_none()

        if not evaluation:
            raise StudyEvaluationNotFoundError(f"Study {study_id} has no evaluation")

        return StudyEvaluationRecord.model_validate(evaluation)

    async def _study_evaluated(self, study_id: int) -> bool:
        existing = await self.db.scalar(
            select(StudyEvaluation.id).where(StudyEvaluation.study_id == study_id)
        )
        return existing is not None
