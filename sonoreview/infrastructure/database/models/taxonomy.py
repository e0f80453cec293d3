# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Taxonomy store models.

Two parallel trees hang off a Protocol:

- Scoring rubric: ScoringSection -> ScoringItem
- Diagnostic tree: DiagnosticWindow -> Finding -> PossibleDiagnosis ->
  Subdiagnosis -> SubSubdiagnosis -> ThirdOrderDiagnosis

Every level is unique per (parent, key). ``key`` is the stable identifier,
``name``/``label`` the display text. Rows are written by the hierarchy
seeder only.

ImageQuality and FinalDiagnosis are flat vocabularies referenced by
reviewer interactions.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Select, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sonoreview.infrastructure.database.models.base import Base, TimestampMixin


class Protocol(Base, TimestampMixin):
    """Imaging examination type rooting a rubric and a diagnostic tree."""

    __tablename__ = "protocol"
    __table_args__ = (UniqueConstraint("key", name="uq_protocol_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    sections: Mapped[list[ScoringSection]] = relationship(
        back_populates="protocol",
        order_by="ScoringSection.sort_order",
    )
    windows: Mapped[list[DiagnosticWindow]] = relationship(back_populates="protocol")


class ScoringSection(Base):
    """Group of rubric items, e.g. image generation or interpretation."""

    __tablename__ = "protocol_section"
    __table_args__ = (
        UniqueConstraint("protocol_id", "key", name="uq_protocol_section_protocol_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    protocol_id: Mapped[int] = mapped_column(
        ForeignKey("protocol.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    protocol: Mapped[Protocol] = relationship(back_populates="sections")
    items: Mapped[list[ScoringItem]] = relationship(
        back_populates="section",
        order_by="ScoringItem.id",
    )


class ScoringItem(Base):
    """Smallest scorable unit of a rubric, with its declared maximum."""

    __tablename__ = "protocol_item"
    __table_args__ = (
        UniqueConstraint("section_id", "key", name="uq_protocol_item_section_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("protocol_section.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    score_scale: Mapped[str] = mapped_column(String(20), nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)

    section: Mapped[ScoringSection] = relationship(back_populates="items")


class DiagnosticWindow(Base):
    """Acquisition window (view) of a protocol."""

    __tablename__ = "protocol_window"
    __table_args__ = (
        UniqueConstraint("protocol_id", "key", name="uq_protocol_window_protocol_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    protocol_id: Mapped[int] = mapped_column(
        ForeignKey("protocol.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    protocol: Mapped[Protocol] = relationship(back_populates="windows")


class Finding(Base):
    """Positive or negative finding within a window."""

    __tablename__ = "finding"
    __table_args__ = (
        UniqueConstraint("window_id", "key", name="uq_finding_window_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    window_id: Mapped[int] = mapped_column(
        ForeignKey("protocol_window.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class PossibleDiagnosis(Base):
    """Candidate diagnosis under a finding."""

    __tablename__ = "possible_diagnosis"
    __table_args__ = (
        UniqueConstraint("finding_id", "key", name="uq_possible_diagnosis_finding_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    finding_id: Mapped[int] = mapped_column(
        ForeignKey("finding.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    @classmethod
    def canonical_id_query(cls, protocol_id: int, key: str) -> Select[tuple[int]]:
        """Select the row that owns the deep branch for ``key`` in a protocol.

        The same key is repeated under every finding of every window, but
        subdiagnoses hang off one row only: the first one created.
        """
        return (
            select(cls.id)
            .join(Finding, Finding.id == cls.finding_id)
            .join(DiagnosticWindow, DiagnosticWindow.id == Finding.window_id)
            .where(cls.key == key, DiagnosticWindow.protocol_id == protocol_id)
            .order_by(cls.id)
            .limit(1)
        )


class Subdiagnosis(Base):
    """Refinement of a possible diagnosis."""

    __tablename__ = "subdiagnosis"
    __table_args__ = (
        UniqueConstraint(
            "possible_diagnosis_id", "key", name="uq_subdiagnosis_possible_diagnosis_id_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    possible_diagnosis_id: Mapped[int] = mapped_column(
        ForeignKey("possible_diagnosis.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class SubSubdiagnosis(Base):
    """Refinement of a subdiagnosis."""

    __tablename__ = "sub_subdiagnosis"
    __table_args__ = (
        UniqueConstraint(
            "subdiagnosis_id", "key", name="uq_sub_subdiagnosis_subdiagnosis_id_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subdiagnosis_id: Mapped[int] = mapped_column(
        ForeignKey("subdiagnosis.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class ThirdOrderDiagnosis(Base):
    """Leaf of the diagnostic tree, e.g. a severity grade."""

    __tablename__ = "third_order_diagnosis"
    __table_args__ = (
        UniqueConstraint(
            "sub_subdiagnosis_id", "key", name="uq_third_order_diagnosis_sub_subdiagnosis_id_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sub_subdiagnosis_id: Mapped[int] = mapped_column(
        ForeignKey("sub_subdiagnosis.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class ImageQuality(Base):
    """Reviewer verdict on acquisition quality."""

    __tablename__ = "image_quality"
    __table_args__ = (UniqueConstraint("name", name="uq_image_quality_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class FinalDiagnosis(Base):
    """Reviewer verdict on the learner's diagnosis (true/false positive/negative)."""

    __tablename__ = "final_diagnosis"
    __table_args__ = (UniqueConstraint("name", name="uq_final_diagnosis_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
