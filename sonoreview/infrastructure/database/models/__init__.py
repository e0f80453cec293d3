# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from sonoreview.infrastructure.database.models.base import Base, TimestampMixin
from sonoreview.infrastructure.database.models.evaluation import (
    EvaluationAttempt,
    EvaluationResponse,
    StudyEvaluation,
)
from sonoreview.infrastructure.database.models.interaction import (
    LEARNER_ROLE,
    REVIEWER_ROLE,
    ClipInteraction,
)
from sonoreview.infrastructure.database.models.taxonomy import (
    DiagnosticWindow,
    FinalDiagnosis,
    Finding,
    ImageQuality,
    PossibleDiagnosis,
    Protocol,
    ScoringItem,
    ScoringSection,
    Subdiagnosis,
    SubSubdiagnosis,
    ThirdOrderDiagnosis,
)
from sonoreview.infrastructure.database.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Taxonomy
    "Protocol",
    "ScoringSection",
    "ScoringItem",
    "DiagnosticWindow",
    "Finding",
    "PossibleDiagnosis",
    "Subdiagnosis",
    "SubSubdiagnosis",
    "ThirdOrderDiagnosis",
    "ImageQuality",
    "FinalDiagnosis",
    # Users
    "User",
    # Evaluation
    "EvaluationAttempt",
    "EvaluationResponse",
    "StudyEvaluation",
    # Interaction
    "ClipInteraction",
    "LEARNER_ROLE",
    "REVIEWER_ROLE",
]
