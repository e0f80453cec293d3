# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Taxonomy service for browsing protocol rubrics and diagnostic trees.

This module provides the TaxonomyService class for:
- Protocol listing and rubric retrieval
- Diagnostic tree navigation, one level at a time
- Image quality and final diagnosis vocabularies
- Rubric item and node point lookups

Nothing here writes; the taxonomy is created by the hierarchy seeder.
"""

from __future__ import annotations

import logging
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

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
    ProtocolRubric,
    ProtocolSummary,
    RubricItemView,
    RubricSectionView,
    TaxonomyNode,
    VocabularyEntry,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class TaxonomyServiceError(Exception):
    """Base exception for taxonomy service errors."""

    pass


class ProtocolNotFoundError(TaxonomyServiceError):
    """Raised when protocol is not found."""

    pass


class TaxonomyService:
    """Read-only access to the taxonomy store.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize taxonomy service.

        Args:
            db: Async database session.
        """
        self.db = db

    # =========================================================================
    # Protocols and rubrics
    # =========================================================================

    async def list_protocols(self) -> list[ProtocolSummary]:
        """List every protocol ordered by key."""
        result = await self.db.execute(select(Protocol).order_by(Protocol.key))
        return [ProtocolSummary.model_validate(p) for p in result.scalars().all()]

    async def get_protocol(self, key: str) -> ProtocolRubric:
        """Get a protocol with its scoring rubric.

        Sections are ordered by sort order, items by creation.

        Args:
            key: Protocol key.

        Returns:
            Protocol rubric.

        Raises:
            ProtocolNotFoundError: If protocol not found.
        """
        stmt = (
            select(Protocol)
            .where(Protocol.key == key)
            .options(selectinload(Protocol.sections).selectinload(ScoringSection.items))
        )
        result = await self.db.execute(stmt)
        protocol = result.scalar_one_or_none()

        if not protocol:
            raise ProtocolNotFoundError(f"Protocol {key} not found")

        sections = sorted(protocol.sections, key=lambda s: (s.sort_order, s.id))
        return ProtocolRubric(
            id=protocol.id,
            key=protocol.key,
            name=protocol.name,
            sections=[
                RubricSectionView(
                    id=section.id,
                    key=section.key,
                    name=section.name,
                    sort_order=section.sort_order,
                    items=[
                        RubricItemView.model_validate(item)
                        for item in sorted(section.items, key=lambda i: i.id)
                    ],
                )
                for section in sections
            ],
        )

    async def get_item(
        self,
        item_key: str,
        protocol_key: str | None = None,
    ) -> ScoringItem | None:
        """Find a rubric item by key.

        Args:
            item_key: Item key.
            protocol_key: Restrict the lookup to this protocol's rubric.
                When omitted, the first item carrying the key wins.

        Returns:
            Rubric item, or None if no item matches.
        """
        stmt = select(ScoringItem).where(ScoringItem.key == item_key)
        if protocol_key is not None:
            stmt = (
                stmt.join(ScoringSection, ScoringSection.id == ScoringItem.section_id)
                .join(Protocol, Protocol.id == ScoringSection.protocol_id)
                .where(Protocol.key == protocol_key)
            )
        result = await self.db.execute(stmt.order_by(ScoringItem.id).limit(1))
        return result.scalar_one_or_none()

    # =========================================================================
    # Diagnostic tree
    # =========================================================================

    async def list_windows(self, protocol_key: str) -> list[TaxonomyNode]:
        """List a protocol's acquisition windows.

        Raises:
            ProtocolNotFoundError: If protocol not found.
        """
        protocol_id = await self.db.scalar(
            select(Protocol.id).where(Protocol.key == protocol_key)
        )
        if protocol_id is None:
            raise ProtocolNotFoundError(f"Protocol {protocol_key} not found")

        return await self._list_children(
            DiagnosticWindow, DiagnosticWindow.protocol_id == protocol_id
        )

    async def list_findings(self, window_id: int) -> list[TaxonomyNode]:
        return await self._list_children(Finding, Finding.window_id == window_id)

    async def list_possible_diagnoses(self, finding_id: int) -> list[TaxonomyNode]:
        return await self._list_children(
            PossibleDiagnosis, PossibleDiagnosis.finding_id == finding_id
        )

    async def list_subdiagnoses(self, possible_diagnosis_id: int) -> list[TaxonomyNode]:
        """List subdiagnoses of a possible diagnosis.

        Subdiagnoses hang off one row per protocol and key, so any row with
        the same key resolves to that branch.
        """
        owner_id = await self._canonical_possible_diagnosis_id(possible_diagnosis_id)
        if owner_id is None:
            return []
        return await self._list_children(
            Subdiagnosis, Subdiagnosis.possible_diagnosis_id == owner_id
        )

    async def list_sub_subdiagnoses(self, subdiagnosis_id: int) -> list[TaxonomyNode]:
        return await self._list_children(
            SubSubdiagnosis, SubSubdiagnosis.subdiagnosis_id == subdiagnosis_id
        )

    async def list_third_order(self, sub_subdiagnosis_id: int) -> list[TaxonomyNode]:
        return await self._list_children(
            ThirdOrderDiagnosis,
            ThirdOrderDiagnosis.sub_subdiagnosis_id == sub_subdiagnosis_id,
        )

    async def get_node(self, model: type[ModelT], node_id: int) -> ModelT | None:
        """Get any taxonomy row by primary key."""
        return await self.db.get(model, node_id)

    # =========================================================================
    # Vocabularies
    # =========================================================================

    async def list_image_qualities(self) -> list[VocabularyEntry]:
        result = await self.db.execute(select(ImageQuality).order_by(ImageQuality.id))
        return [VocabularyEntry.model_validate(q) for q in result.scalars().all()]

    async def list_final_diagnoses(self) -> list[VocabularyEntry]:
        result = await self.db.execute(select(FinalDiagnosis).order_by(FinalDiagnosis.id))
        return [VocabularyEntry.model_validate(d) for d in result.scalars().all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _list_children(self, model, condition) -> list[TaxonomyNode]:
        result = await self.db.execute(select(model).where(condition).order_by(model.key))
        return [TaxonomyNode.model_validate(node) for node in result.scalars().all()]

    async def _canonical_possible_diagnosis_id(self, possible_diagnosis_id: int) -> int | None:
        row = (
            await self.db.execute(
                select(PossibleDiagnosis.key, DiagnosticWindow.protocol_id)
                .join(Finding, Finding.id == PossibleDiagnosis.finding_id)
                .join(DiagnosticWindow, DiagnosticWindow.id == Finding.window_id)
                .where(PossibleDiagnosis.id == possible_diagnosis_id)
            )
        ).one_or_none()

        if row is None:
            logger.debug("Possible diagnosis %s not found", possible_diagnosis_id)
            return None

        return await self.db.scalar(
            PossibleDiagnosis.canonical_id_query(row.protocol_id, row.key)
        )
