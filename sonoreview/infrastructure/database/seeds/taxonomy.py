# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Protocol taxonomy seed data.

Materializes a declarative TaxonomyDefinition into the taxonomy store:
- Image quality and final diagnosis vocabularies
- Protocols with their scoring rubric (sections and items)
- Diagnostic trees (windows, fixed findings, possible diagnoses and the
  deeper subdiagnosis levels)

Seeding is idempotent and safe to run on every process start, including
from several processes at once. Every node goes through resolve_or_create,
which inserts with ON CONFLICT DO NOTHING and then reads the row id back.
"""

import asyncio
import logging
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sonoreview.core.config.yaml_loader import YAMLLoadError, load_yaml, load_yaml_directory
from sonoreview.infrastructure.database.models import (
    Base,
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
from sonoreview.models.taxonomy import (
    PossibleDiagnosisDefinition,
    ProtocolDefinition,
    ScoringSectionDefinition,
    TaxonomyDefinition,
)

logger = logging.getLogger(__name__)

# Every window gets exactly these findings, whatever the definition says.
FINDINGS: tuple[tuple[str, str], ...] = (
    ("positive", "Positive"),
    ("negative", "Negative"),
)


class ConfigurationGapError(Exception):
    """Raised when an expected parent node cannot be resolved."""

    pass


class TaxonomyDefinitionError(Exception):
    """Raised when a taxonomy definition cannot be loaded or validated."""

    pass


@dataclass
class SeedReport:
    """Outcome of one seeding run.

    Attributes:
        inserted: Rows inserted by this run, keyed by table name.
        gaps: Branches skipped because a parent could not be resolved.
    """

    inserted: Counter = field(default_factory=Counter)
    gaps: list[str] = field(default_factory=list)

    @property
    def total_inserted(self) -> int:
        """Rows inserted across all tables."""
        return sum(self.inserted.values())

    def record_gap(self, error: ConfigurationGapError) -> None:
        """Log and remember a skipped branch."""
        logger.warning("Skipping taxonomy branch: %s", error)
        self.gaps.append(str(error))


def _dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


async def resolve_or_create(
    session: AsyncSession,
    model: type[Base],
    lookup: dict[str, Any],
    attrs: Optional[dict[str, Any]] = None,
    report: Optional[SeedReport] = None,
) -> int:
    """Return the id of the row identified by ``lookup``, inserting it if absent.

    ``lookup`` must hold exactly the columns of one of the model's unique
    constraints (typically parent id and key). ``attrs`` are only written on
    insert; an existing row is never modified.

    Args:
        session: Database session.
        model: Taxonomy model class.
        lookup: Unique-key column values.
        attrs: Remaining column values for a new row.
        report: Optional report that counts inserted rows.

    Returns:
        Primary key of the existing or new row.

    Raises:
        ConfigurationGapError: If the row cannot be read back.
    """
    values = {**lookup, **(attrs or {})}
    dialect = _dialect_name(session)

    if dialect in ("postgresql", "sqlite"):
        dialect_insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
        stmt = dialect_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=list(lookup)
        )
        result = await session.execute(stmt)
        created = bool(result.rowcount)
    else:
        created = await _insert_in_savepoint(session, model, values)

    if created and report is not None:
        report.inserted[model.__tablename__] += 1

    row_id = await session.scalar(select(model.id).filter_by(**lookup))
    if row_id is None:
        raise ConfigurationGapError(f"{model.__tablename__} {lookup} could not be resolved")
    return row_id


async def _insert_in_savepoint(
    session: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
) -> bool:
    """Insert for dialects without ON CONFLICT; a unique violation means it exists."""
    try:
        async with session.begin_nested():
            await session.execute(insert(model).values(**values))
    except IntegrityError:
        return False
    return True


async def seed_vocabularies(
    session: AsyncSession,
    definition: TaxonomyDefinition,
    report: SeedReport,
) -> None:
    """Seed image quality and final diagnosis options.

    Args:
        session: Database session.
        definition: Taxonomy definition.
        report: Seeding report.
    """
    for name in definition.image_qualities:
        await resolve_or_create(session, ImageQuality, {"name": name}, report=report)

    for name in definition.final_diagnoses:
        await resolve_or_create(session, FinalDiagnosis, {"name": name}, report=report)


async def seed_rubric(
    session: AsyncSession,
    protocol_id: int,
    sections: list[ScoringSectionDefinition],
    report: SeedReport,
) -> None:
    """Seed rubric sections and their items under a protocol.

    Args:
        session: Database session.
        protocol_id: Resolved protocol id.
        sections: Section definitions.
        report: Seeding report.
    """
    for section in sections:
        try:
            section_id = await resolve_or_create(
                session,
                ScoringSection,
                {"protocol_id": protocol_id, "key": section.key},
                {"name": section.name, "sort_order": section.order},
                report,
            )
        except ConfigurationGapError as e:
            report.record_gap(e)
            continue

        for item in section.items:
            await resolve_or_create(
                session,
                ScoringItem,
                {"section_id": section_id, "key": item.key},
                {
                    "label": item.label,
                    "score_scale": item.scale,
                    "max_score": item.max_score,
                },
                report,
            )


async def seed_diagnostic_tree(
    session: AsyncSession,
    protocol_id: int,
    protocol: ProtocolDefinition,
    report: SeedReport,
) -> None:
    """Seed windows, findings and possible diagnoses, then the deep branches.

    Possible diagnoses are repeated under both findings of every window.
    Their subdiagnosis branches are seeded once per protocol and key.

    Args:
        session: Database session.
        protocol_id: Resolved protocol id.
        protocol: Protocol definition.
        report: Seeding report.
    """
    for window in protocol.windows:
        try:
            window_id = await resolve_or_create(
                session,
                DiagnosticWindow,
                {"protocol_id": protocol_id, "key": window.key},
                {"name": window.display_name},
                report,
            )
        except ConfigurationGapError as e:
            report.record_gap(e)
            continue

        for finding_key, finding_name in FINDINGS:
            finding_id = await resolve_or_create(
                session,
                Finding,
                {"window_id": window_id, "key": finding_key},
                {"name": finding_name},
                report,
            )

            for diagnosis in protocol.possible_diagnoses:
                await resolve_or_create(
                    session,
                    PossibleDiagnosis,
                    {"finding_id": finding_id, "key": diagnosis.key},
                    {"name": diagnosis.display_name},
                    report,
                )

    for diagnosis in protocol.possible_diagnoses:
        if not diagnosis.subdiagnoses:
            continue
        try:
            await seed_diagnosis_branch(session, protocol_id, diagnosis, report)
        except ConfigurationGapError as e:
            report.record_gap(e)


async def seed_diagnosis_branch(
    session: AsyncSession,
    protocol_id: int,
    diagnosis: PossibleDiagnosisDefinition,
    report: SeedReport,
) -> None:
    """Seed subdiagnosis, sub-subdiagnosis and third-order levels.

    The branch hangs off the first possible_diagnosis row carrying the key
    within the protocol.

    Raises:
        ConfigurationGapError: If no possible_diagnosis row exists for the key.
    """
    owner_id = await session.scalar(
        PossibleDiagnosis.canonical_id_query(protocol_id, diagnosis.key)
    )
    if owner_id is None:
        raise ConfigurationGapError(
            f"possible_diagnosis {diagnosis.key!r} not found in protocol {protocol_id}"
        )

    for sub in diagnosis.subdiagnoses:
        sub_id = await resolve_or_create(
            session,
            Subdiagnosis,
            {"possible_diagnosis_id": owner_id, "key": sub.key},
            {"name": sub.display_name},
            report,
        )

        for sub_sub in sub.sub_subdiagnoses:
            sub_sub_id = await resolve_or_create(
                session,
                SubSubdiagnosis,
                {"subdiagnosis_id": sub_id, "key": sub_sub.key},
                {"name": sub_sub.display_name},
                report,
            )

            for third in sub_sub.third_order:
                await resolve_or_create(
                    session,
                    ThirdOrderDiagnosis,
                    {"sub_subdiagnosis_id": sub_sub_id, "key": third.key},
                    {"name": third.display_name},
                    report,
                )


async def seed_protocol(
    session: AsyncSession,
    protocol: ProtocolDefinition,
    report: SeedReport,
) -> int:
    """Seed one protocol with its rubric and diagnostic tree.

    Returns:
        Protocol id.

    Raises:
        ConfigurationGapError: If the protocol row cannot be resolved.
    """
    protocol_id = await resolve_or_create(
        session,
        Protocol,
        {"key": protocol.key},
        {"name": protocol.name},
        report,
    )

    await seed_rubric(session, protocol_id, protocol.rubric, report)
    await seed_diagnostic_tree(session, protocol_id, protocol, report)
    return protocol_id


async def seed_taxonomy(
    session: AsyncSession,
    definition: TaxonomyDefinition,
) -> SeedReport:
    """Materialize a taxonomy definition. Safe to re-run any number of times.

    A protocol whose row cannot be resolved is skipped and logged; the
    remaining protocols are still seeded.

    Args:
        session: Database session.
        definition: Declarative taxonomy.

    Returns:
        Report of inserted rows and skipped branches.
    """
    logger.info("Seeding taxonomy (%d protocols)...", len(definition.protocols))
    report = SeedReport()

    await seed_vocabularies(session, definition, report)

    for protocol in definition.protocols:
        try:
            await seed_protocol(session, protocol, report)
        except ConfigurationGapError as e:
            report.record_gap(e)

    await session.commit()

    logger.info(
        "Taxonomy seeding complete: %d rows inserted, %d branches skipped",
        report.total_inserted,
        len(report.gaps),
    )
    return report


def load_taxonomy_definition(path: Path) -> TaxonomyDefinition:
    """Load a taxonomy definition from a YAML file or a directory of them.

    Files in a directory are merged in filename order.

    Args:
        path: YAML file or directory.

    Returns:
        Validated taxonomy definition.

    Raises:
        TaxonomyDefinitionError: If a file cannot be read or does not
            describe a valid taxonomy, or if a directory holds no files.
    """
    try:
        if path.is_dir():
            documents = list(load_yaml_directory(path).items())
            if not documents:
                raise TaxonomyDefinitionError(f"No taxonomy files found in '{path}'")
        else:
            documents = [(path.stem, load_yaml(path))]
    except YAMLLoadError as e:
        raise TaxonomyDefinitionError(str(e)) from e

    definition = TaxonomyDefinition()
    for name, document in documents:
        try:
            definition = definition.merge(TaxonomyDefinition.model_validate(document))
        except ValidationError as e:
            raise TaxonomyDefinitionError(f"Invalid taxonomy definition '{name}': {e}") from e

    return definition


if __name__ == "__main__":
    from sonoreview.core.config import get_settings
    from sonoreview.infrastructure.database.connection import (
        create_engine_for_url,
        create_schema,
        create_sessionmaker,
    )
    from sonoreview.utils.logging import setup_logging

    async def main() -> None:
        settings = get_settings()
        setup_logging(settings)

        path = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.taxonomy.definition_path
        definition = load_taxonomy_definition(path)

        engine = create_engine_for_url(settings.database.url)
        try:
            if settings.taxonomy.create_schema:
                await create_schema(engine)
            async with create_sessionmaker(engine)() as session:
                await seed_taxonomy(session, definition)
        finally:
            await engine.dispose()

    asyncio.run(main())
