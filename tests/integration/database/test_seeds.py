# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the taxonomy seeder.

Tests seed data insertion against a real database.
Requires PostgreSQL to be running.
"""

import asyncio
import os

import pytest
from sqlalchemy import func, select

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("TEST_DATABASE_URL"),
        reason="TEST_DATABASE_URL not set",
    ),
]


class TestTaxonomySeeds:
    """Test taxonomy seeding on PostgreSQL."""

    @pytest.mark.asyncio
    async def test_bundled_definition_seeds_idempotently(self, db_session):
        """Verify the bundled taxonomy seeds cleanly and re-seeds as a no-op."""
        from sonoreview.core.config.settings import DEFAULT_TAXONOMY_PATH
        from sonoreview.infrastructure.database.seeds import (
            load_taxonomy_definition,
            seed_taxonomy,
        )

        definition = load_taxonomy_definition(DEFAULT_TAXONOMY_PATH)

        first = await seed_taxonomy(db_session, definition)
        second = await seed_taxonomy(db_session, definition)

        assert first.gaps == []
        assert first.total_inserted > 0
        assert second.total_inserted == 0

    @pytest.mark.asyncio
    async def test_concurrent_seeders_do_not_conflict(self, db_engine, taxonomy_definition):
        """Verify two processes seeding at once produce one copy of each row."""
        from sonoreview.infrastructure.database.connection import create_sessionmaker
        from sonoreview.infrastructure.database.models import PossibleDiagnosis, Protocol
        from sonoreview.infrastructure.database.seeds import seed_taxonomy

        sessionmaker = create_sessionmaker(db_engine)

        async def run_seed():
            async with sessionmaker() as session:
                return await seed_taxonomy(session, taxonomy_definition)

        reports = await asyncio.gather(run_seed(), run_seed())

        async with sessionmaker() as session:
            protocols = await session.scalar(select(func.count()).select_from(Protocol))
            diagnoses = await session.scalar(
                select(func.count()).select_from(PossibleDiagnosis)
            )

        assert protocols == 2
        assert diagnoses == 10
        assert all(report.gaps == [] for report in reports)


class TestServicesOnPostgres:
    """Test store-enforced invariants through the services."""

    @pytest.mark.asyncio
    async def test_duplicate_submission_rejected(self, seeded_session, learner):
        """Verify the per-role uniqueness holds on PostgreSQL."""
        from sonoreview.domains.interaction import (
            DuplicateSubmissionError,
            InteractionService,
        )
        from sonoreview.models.interaction import DiagnosticPath

        service = InteractionService(seeded_session)
        await service.submit_learner_interaction(1, learner.id, DiagnosticPath(), "first")

        with pytest.raises(DuplicateSubmissionError):
            await service.submit_learner_interaction(1, learner.id, DiagnosticPath(), "second")

        result = await service.get_interactions(1)
        assert result.learner.comment == "first"

    @pytest.mark.asyncio
    async def test_attempt_totals(self, seeded_session, reviewer):
        """Verify attempt totals aggregate on PostgreSQL."""
        from sonoreview.domains.evaluation import EvaluationService

        service = EvaluationService(seeded_session)
        await service.create_attempt(
            5,
            reviewer.id,
            [{"itemKey": "PSL", "score": 12}, {"itemKey": "LV", "score": 1}],
        )

        attempts = await service.list_attempts(5)

        assert attempts[0].total_score == 11
        assert attempts[0].reviewer_name == "Ana Silva"

    @pytest.mark.asyncio
    async def test_unknown_reviewer_form_is_store_failure(self, db_session):
        """Verify a foreign-key failure is not reported as an existing form."""
        from sonoreview.domains.evaluation import EvaluationService
        from sonoreview.infrastructure.database.connection import DatabaseError

        service = EvaluationService(db_session)

        with pytest.raises(DatabaseError):
            await service.create_study_evaluation(5, 999, 7)
