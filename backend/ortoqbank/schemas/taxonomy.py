"""Pydantic schemas for the taxonomy."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ortoqbank.models.taxonomy import TaxonomyType

NAME_MAX_LENGTH = 255
PREFIX_MAX_LENGTH = 50


class TaxonomyNodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: TaxonomyType
    prefix: str | None = None
    parent_id: int | None = None
    path_ids: list[int] = Field(default_factory=list)
    path_names: list[str] = Field(default_factory=list)


class TaxonomyTreeNode(BaseModel):
    """Nested hierarchy entry (theme -> subthemes -> groups)."""

    id: int
    name: str
    type: TaxonomyType
    prefix: str | None = None
    children: list[TaxonomyTreeNode] = Field(default_factory=list)


class TaxonomyPathOut(BaseModel):
    theme: TaxonomyNodeOut | None = None
    subtheme: TaxonomyNodeOut | None = None
    group: TaxonomyNodeOut | None = None


class TaxonomyNodeCreate(BaseModel):
    type: TaxonomyType
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    parent_id: int | None = None
    prefix: str | None = Field(None, max_length=PREFIX_MAX_LENGTH)


class TaxonomyNodeUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    prefix: str | None = Field(None, max_length=PREFIX_MAX_LENGTH)


class TaxonomyQuestionCount(BaseModel):
    taxonomy_id: int
    level: TaxonomyType
    count: int


# Legacy flat export (one list per level, parents referenced by legacy id)


class LegacyTheme(BaseModel):
    id: str
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    prefix: str | None = None


class LegacySubtheme(LegacyTheme):
    theme_id: str


class LegacyGroup(LegacyTheme):
    subtheme_id: str


class LegacyTaxonomyExport(BaseModel):
    themes: list[LegacyTheme] = Field(default_factory=list)
    subthemes: list[LegacySubtheme] = Field(default_factory=list)
    groups: list[LegacyGroup] = Field(default_factory=list)


class LegacyImportResult(BaseModel):
    dry_run: bool
    themes_created: int = 0
    subthemes_created: int = 0
    groups_created: int = 0
    existing: int = 0
    errors: list[str] = Field(default_factory=list)
