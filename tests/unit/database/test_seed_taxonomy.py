# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the taxonomy seeder.

Runs against an in-memory SQLite store.
"""

from pathlib import Path

import pytest
from sqlalchemy import func, select

from sonoreview.infrastructure.database.models import (
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
from sonoreview.infrastructure.database.seeds import taxonomy as taxonomy_seeds
from sonoreview.infrastructure.database.seeds.taxonomy import (
    FINDINGS,
    ConfigurationGapError,
    SeedReport,
    TaxonomyDefinitionError,
    load_taxonomy_definition,
    resolve_or_create,
    seed_taxonomy,
)
from sonoreview.models.taxonomy import TaxonomyDefinition

TAXONOMY_MODELS = [
    Protocol,
    ScoringSection,
    ScoringItem,
    DiagnosticWindow,
    Finding,
    PossibleDiagnosis,
    Subdiagnosis,
    SubSubdiagnosis,
    ThirdOrderDiagnosis,
    ImageQuality,
    FinalDiagnosis,
]


async def _row_counts(session) -> dict[str, int]:
    counts = {}
    for model in TAXONOMY_MODELS:
        counts[model.__tablename__] = await session.scalar(
            select(func.count()).select_from(model)
        )
    return counts


class TestResolveOrCreate:
    """Tests for the insert-or-ignore primitive."""

    @pytest.mark.asyncio
    async def test_inserts_new_row(self, db_session):
        """Verify a missing row is inserted and its id returned."""
        report = SeedReport()

        protocol_id = await resolve_or_create(
            db_session, Protocol, {"key": "cardiac"}, {"name": "Cardiac"}, report
        )

        protocol = await db_session.get(Protocol, protocol_id)
        assert protocol.key == "cardiac"
        assert protocol.name == "Cardiac"
        assert report.inserted["protocol"] == 1

    @pytest.mark.asyncio
    async def test_existing_row_is_reused_and_not_modified(self, db_session):
        """Verify an existing row keeps its attributes and id."""
        report = SeedReport()
        first_id = await resolve_or_create(
            db_session, Protocol, {"key": "cardiac"}, {"name": "Cardiac"}, report
        )

        second_id = await resolve_or_create(
            db_session, Protocol, {"key": "cardiac"}, {"name": "Renamed"}, report
        )

        name = await db_session.scalar(select(Protocol.name).where(Protocol.id == first_id))
        assert second_id == first_id
        assert name == "Cardiac"
        assert report.inserted["protocol"] == 1

    @pytest.mark.asyncio
    async def test_same_key_under_different_parents(self, db_session):
        """Verify keys are only unique per parent."""
        cardiac_id = await resolve_or_create(
            db_session, Protocol, {"key": "cardiac"}, {"name": "Cardiac"}
        )
        lung_id = await resolve_or_create(db_session, Protocol, {"key": "lung"}, {"name": "Lung"})

        first = await resolve_or_create(
            db_session,
            DiagnosticWindow,
            {"protocol_id": cardiac_id, "key": "A4C"},
            {"name": "A4C"},
        )
        second = await resolve_or_create(
            db_session,
            DiagnosticWindow,
            {"protocol_id": lung_id, "key": "A4C"},
            {"name": "A4C"},
        )

        assert first != second


class TestSeedTaxonomy:
    """Tests for seed_taxonomy."""

    @pytest.mark.asyncio
    async def test_seeds_every_level(self, db_session, taxonomy_definition):
        """Verify row counts for the small taxonomy."""
        report = await seed_taxonomy(db_session, taxonomy_definition)

        counts = await _row_counts(db_session)
        assert counts == {
            "protocol": 2,
            "protocol_section": 3,
            "protocol_item": 5,
            "protocol_window": 3,
            "finding": 6,
            "possible_diagnosis": 10,
            "subdiagnosis": 2,
            "sub_subdiagnosis": 1,
            "third_order_diagnosis": 3,
            "image_quality": 2,
            "final_diagnosis": 2,
        }
        assert report.total_inserted == sum(counts.values())
        assert report.gaps == []

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, db_session, taxonomy_definition):
        """Verify re-seeding leaves row counts unchanged and inserts nothing."""
        await seed_taxonomy(db_session, taxonomy_definition)
        counts_after_first = await _row_counts(db_session)

        report = await seed_taxonomy(db_session, taxonomy_definition)

        assert await _row_counts(db_session) == counts_after_first
        assert report.total_inserted == 0

    @pytest.mark.asyncio
    async def test_every_window_gets_fixed_findings(self, db_session, taxonomy_definition):
        """Verify each window has exactly the positive and negative findings."""
        await seed_taxonomy(db_session, taxonomy_definition)

        windows = (await db_session.execute(select(DiagnosticWindow))).scalars().all()
        for window in windows:
            keys = (
                await db_session.execute(
                    select(Finding.key).where(Finding.window_id == window.id).order_by(Finding.key)
                )
            ).scalars().all()
            assert keys == sorted(key for key, _ in FINDINGS)

    @pytest.mark.asyncio
    async def test_shared_branch_seeded_once(self, db_session, taxonomy_definition):
        """Verify a possible diagnosis shared by two windows owns one deep branch."""
        await seed_taxonomy(db_session, taxonomy_definition)

        rows = (
            await db_session.execute(
                select(PossibleDiagnosis.id).where(PossibleDiagnosis.key == "Valvulopathy")
            )
        ).scalars().all()
        owners = (
            await db_session.execute(select(Subdiagnosis.possible_diagnosis_id).distinct())
        ).scalars().all()

        assert len(rows) == 4
        assert owners == [min(rows)]

    @pytest.mark.asyncio
    async def test_rubric_values(self, db_session, taxonomy_definition):
        """Verify item attributes and scale defaults."""
        await seed_taxonomy(db_session, taxonomy_definition)

        item = await db_session.scalar(select(ScoringItem).where(ScoringItem.key == "PSL"))
        binary = await db_session.scalar(select(ScoringItem).where(ScoringItem.key == "LV"))

        assert item.max_score == 10
        assert item.score_scale == "0-5"
        assert binary.score_scale == "binary"
        assert binary.max_score == 1

    @pytest.mark.asyncio
    async def test_repeated_possible_diagnosis_entries_merge(self, db_session):
        """Verify descendants of a key listed twice end up under one row."""
        definition = TaxonomyDefinition.model_validate(
            {
                "protocols": [
                    {
                        "key": "cardiac",
                        "name": "Cardiac",
                        "windows": ["A4C"],
                        "possible_diagnoses": [
                            {"key": "RV", "subdiagnoses": ["TAPSE"]},
                            {"key": "RV", "subdiagnoses": ["mPAP"]},
                        ],
                    }
                ]
            }
        )

        await seed_taxonomy(db_session, definition)

        keys = (
            await db_session.execute(select(Subdiagnosis.key).order_by(Subdiagnosis.key))
        ).scalars().all()
        assert keys == ["TAPSE", "mPAP"]
        assert await db_session.scalar(
            select(func.count()).select_from(PossibleDiagnosis)
        ) == 2

    @pytest.mark.asyncio
    async def test_configuration_gap_skips_branch(
        self, db_session, taxonomy_definition, monkeypatch
    ):
        """Verify a failing protocol is logged and skipped, others still seed."""
        original = taxonomy_seeds.seed_protocol

        async def failing_seed_protocol(session, protocol, report):
            if protocol.key == "cardiac":
                raise ConfigurationGapError("protocol 'cardiac' could not be resolved")
            return await original(session, protocol, report)

        monkeypatch.setattr(taxonomy_seeds, "seed_protocol", failing_seed_protocol)

        report = await seed_taxonomy(db_session, taxonomy_definition)

        keys = (await db_session.execute(select(Protocol.key))).scalars().all()
        assert keys == ["lung"]
        assert report.gaps == ["protocol 'cardiac' could not be resolved"]

    @pytest.mark.asyncio
    async def test_missing_branch_owner_is_a_gap(self, db_session):
        """Verify a deep branch without possible diagnosis rows is skipped."""
        definition = TaxonomyDefinition.model_validate(
            {
                "protocols": [
                    {
                        "key": "fate",
                        "name": "FATE",
                        "possible_diagnoses": [{"key": "LVEF", "subdiagnoses": ["<40%"]}],
                    }
                ]
            }
        )

        report = await seed_taxonomy(db_session, definition)

        assert len(report.gaps) == 1
        assert "LVEF" in report.gaps[0]
        assert await db_session.scalar(select(func.count()).select_from(Subdiagnosis)) == 0


class TestLoadTaxonomyDefinition:
    """Tests for load_taxonomy_definition."""

    def test_loads_bundled_definition(self):
        """Verify the bundled YAML validates and shares rubrics through anchors."""
        from sonoreview.core.config.settings import DEFAULT_TAXONOMY_PATH

        definition = load_taxonomy_definition(DEFAULT_TAXONOMY_PATH)

        protocols = {p.key: p for p in definition.protocols}
        assert {"cardiac", "lung", "fate", "renal"} <= set(protocols)
        assert [s.key for s in protocols["fate"].rubric] == ["adq", "int"]
        assert protocols["fate"].rubric == protocols["cardiac"].rubric
        assert definition.image_qualities == ["Good", "Poor"]
        assert len(definition.final_diagnoses) == 4

    def test_loads_directory_in_filename_order(self, tmp_path: Path):
        """Verify files in a directory are merged by filename."""
        (tmp_path / "b_lung.yaml").write_text("protocols:\n  - key: lung\n    name: Lung\n")
        (tmp_path / "a_cardiac.yaml").write_text(
            "image_qualities: [Good]\nprotocols:\n  - key: cardiac\n    name: Cardiac\n"
        )

        definition = load_taxonomy_definition(tmp_path)

        assert [p.key for p in definition.protocols] == ["cardiac", "lung"]
        assert definition.image_qualities == ["Good"]

    def test_invalid_definition_raises(self, tmp_path: Path):
        """Verify schema violations are reported as TaxonomyDefinitionError."""
        path = tmp_path / "bad.yaml"
        path.write_text("protocols:\n  - key: cardiac\n    unknown: true\n")

        with pytest.raises(TaxonomyDefinitionError) as exc_info:
            load_taxonomy_definition(path)

        assert "bad" in str(exc_info.value)

    def test_empty_directory_raises(self, tmp_path: Path):
        """Verify a directory without YAML files is not an empty taxonomy."""
        with pytest.raises(TaxonomyDefinitionError) as exc_info:
            load_taxonomy_definition(tmp_path)

        assert "No taxonomy files" in str(exc_info.value)

    def test_missing_file_raises(self, tmp_path: Path):
        """Verify a missing file is reported as TaxonomyDefinitionError."""
        with pytest.raises(TaxonomyDefinitionError):
            load_taxonomy_definition(tmp_path / "missing.yaml")

    @pytest.mark.asyncio
    async def test_bundled_definition_seeds_idempotently(self, db_session):
        """Verify the bundled taxonomy seeds cleanly twice."""
        from sonoreview.core.config.settings import DEFAULT_TAXONOMY_PATH

        definition = load_taxonomy_definition(DEFAULT_TAXONOMY_PATH)

        first = await seed_taxonomy(db_session, definition)
        second = await seed_taxonomy(db_session, definition)

        assert first.gaps == []
        assert first.total_inserted > 0
        assert second.total_inserted == 0
