# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic schemas exchanged with collaborators.

- taxonomy: declarative taxonomy definitions and read-side views
- evaluation: rubric score input and attempt/response projections
- interaction: learner/reviewer submissions and their views
"""

from sonoreview.models.evaluation import (
    AttemptCreated,
    AttemptSummary,
    ResponseInput,
    ResponseRecord,
    StudyEvaluationRecord,
)
from sonoreview.models.interaction import (
    ClipInteractions,
    DiagnosticPath,
    Interaction,
    InteractionCreated,
    LearnerInteraction,
    ReviewerInteraction,
)
from sonoreview.models.taxonomy import (
    PossibleDiagnosisDefinition,
    ProtocolDefinition,
    ProtocolRubric,
    ProtocolSummary,
    RubricItemView,
    RubricSectionView,
    ScoringItemDefinition,
    ScoringSectionDefinition,
    SubdiagnosisDefinition,
    SubSubdiagnosisDefinition,
    TaxonomyDefinition,
    TaxonomyNode,
    ThirdOrderDefinition,
    VocabularyEntry,
    WindowDefinition,
)

__all__ = [
    # Taxonomy definitions
    "TaxonomyDefinition",
    "ProtocolDefinition",
    "ScoringSectionDefinition",
    "ScoringItemDefinition",
    "WindowDefinition",
    "PossibleDiagnosisDefinition",
    "SubdiagnosisDefinition",
    "SubSubdiagnosisDefinition",
    "ThirdOrderDefinition",
    # Taxonomy views
    "ProtocolSummary",
    "ProtocolRubric",
    "RubricSectionView",
    "RubricItemView",
    "TaxonomyNode",
    "VocabularyEntry",
    # Evaluation
    "ResponseInput",
    "AttemptCreated",
    "AttemptSummary",
    "ResponseRecord",
    "StudyEvaluationRecord",
    # Interaction
    "DiagnosticPath",
    "InteractionCreated",
    "LearnerInteraction",
    "ReviewerInteraction",
    "Interaction",
    "ClipInteractions",
]
