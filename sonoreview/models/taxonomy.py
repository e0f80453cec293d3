# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Taxonomy schemas.

Two groups of models live here:

- Definition models: the declarative taxonomy consumed by the hierarchy
  seeder (usually parsed from YAML).
- View models: read-side projections returned by TaxonomyService.

Any diagnostic-tree node may be written as a bare string in a definition;
the string becomes both key and display name.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Definitions
# =============================================================================


class TaxonomyNodeDefinition(BaseModel):
    """Keyed node of the diagnostic tree.

    Attributes:
        key: Stable identifier, unique among siblings.
        name: Display label. Defaults to the key.
    """

    model_config = ConfigDict(extra="forbid")

    key: str = Field(min_length=1, description="Stable node identifier")
    name: str | None = Field(default=None, description="Display label")

    @model_validator(mode="before")
    @classmethod
    def _expand_bare_key(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"key": data}
        return data

    @property
    def display_name(self) -> str:
        """Name to store, falling back to the key."""
        return self.name or self.key


class ThirdOrderDefinition(TaxonomyNodeDefinition):
    """Leaf level, e.g. a severity grade."""


class SubSubdiagnosisDefinition(TaxonomyNodeDefinition):
    """Third level below a possible diagnosis."""

    third_order: list[ThirdOrderDefinition] = Field(default_factory=list)


class SubdiagnosisDefinition(TaxonomyNodeDefinition):
    """Refinement of a possible diagnosis."""

    sub_subdiagnoses: list[SubSubdiagnosisDefinition] = Field(default_factory=list)


class PossibleDiagnosisDefinition(TaxonomyNodeDefinition):
    """Candidate diagnosis offered under every finding of the protocol."""

    subdiagnoses: list[SubdiagnosisDefinition] = Field(default_factory=list)


class WindowDefinition(TaxonomyNodeDefinition):
    """Acquisition window of a protocol."""


class ScoringItemDefinition(BaseModel):
    """Rubric item.

    Attributes:
        key: Identifier unique within the section.
        label: Display label.
        scale: Scale descriptor tag (e.g. "0-5", "binary").
        max_score: Highest storable score.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    key: str = Field(min_length=1)
    label: str
    scale: str = "0-5"
    max_score: int = Field(ge=0, validation_alias=AliasChoices("max_score", "max"))


class ScoringSectionDefinition(BaseModel):
    """Rubric section and its items."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    key: str = Field(min_length=1)
    name: str
    order: int = Field(default=0, validation_alias=AliasChoices("order", "sort_order"))
    items: list[ScoringItemDefinition] = Field(default_factory=list)


class ProtocolDefinition(BaseModel):
    """One protocol with its rubric and diagnostic tree.

    Findings are not part of the definition: every window always gets the
    fixed positive/negative pair.
    """

    model_config = ConfigDict(extra="forbid")

    key: str = Field(min_length=1, description="Unique protocol slug")
    name: str
    rubric: list[ScoringSectionDefinition] = Field(default_factory=list)
    windows: list[WindowDefinition] = Field(default_factory=list)
    possible_diagnoses: list[PossibleDiagnosisDefinition] = Field(default_factory=list)


class TaxonomyDefinition(BaseModel):
    """Complete declarative taxonomy.

    Top-level keys starting with ``x-`` are ignored; they hold YAML anchors
    shared between protocols.
    """

    model_config = ConfigDict(extra="forbid")

    protocols: list[ProtocolDefinition] = Field(default_factory=list)
    image_qualities: list[str] = Field(default_factory=list)
    final_diagnoses: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_extension_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if not str(k).startswith("x-")}
        return data

    def merge(self, other: "TaxonomyDefinition") -> "TaxonomyDefinition":
        """Concatenate two definitions, keeping this one's order first."""
        return TaxonomyDefinition(
            protocols=[*self.protocols, *other.protocols],
            image_qualities=[*self.image_qualities, *other.image_qualities],
            final_diagnoses=[*self.final_diagnoses, *other.final_diagnoses],
        )


# =============================================================================
# Views
# =============================================================================


class ProtocolSummary(BaseModel):
    """Protocol identity."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    name: str


class RubricItemView(BaseModel):
    """Rubric item as presented on the scoring form."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    label: str
    score_scale: str
    max_score: int


class RubricSectionView(BaseModel):
    """Rubric section with its items in declaration order."""

    id: int
    key: str
    name: str
    sort_order: int
    items: list[RubricItemView] = Field(default_factory=list)


class ProtocolRubric(ProtocolSummary):
    """Protocol with its full scoring rubric."""

    sections: list[RubricSectionView] = Field(default_factory=list)

    @property
    def max_total_score(self) -> int:
        """Sum of every item's maximum score."""
        return sum(item.max_score for section in self.sections for item in section.items)


class TaxonomyNode(BaseModel):
    """Any diagnostic-tree node."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    name: str


class VocabularyEntry(BaseModel):
    """Image quality or final diagnosis option."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
