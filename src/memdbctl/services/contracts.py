"""Typed contracts for knowledge-graph inputs and payloads.

Input models validate what callers hand to ``MemoryService`` before any
statement runs; payload models pin the camelCase keys that leave the
service layer so key regressions (for example ``entityType`` vs
``entity_type``) fail fast in tests.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python", by_alias=True)


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


class _Wire(BaseModel):
    """Accepts both the camelCase wire names and the Python field names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ── Inputs ───────────────────────────────────────────────────────────


class EntityInput(_Wire):
    """One entity to create, with its initial observations."""

    name: str
    entity_type: str = Field(alias="entityType")
    observations: list[str] = Field(default_factory=list)

    @field_validator("name", "entity_type")
    @classmethod
    def check_blank(cls, value: str) -> str:
        return _not_blank(value)


class RelationInput(_Wire):
    """A directed, typed edge identified by its full triple."""

    from_entity: str = Field(alias="from")
    to_entity: str = Field(alias="to")
    relation_type: str = Field(alias="relationType")

    @field_validator("from_entity", "to_entity", "relation_type")
    @classmethod
    def check_blank(cls, value: str) -> str:
        return _not_blank(value)

    @property
    def triple(self) -> tuple[str, str, str]:
        return (self.from_entity, self.to_entity, self.relation_type)


class ObservationAddition(_Wire):
    entity_name: str = Field(alias="entityName")
    contents: list[str]


class ObservationDeletion(_Wire):
    entity_name: str = Field(alias="entityName")
    observations: list[str]


# ── Payloads ─────────────────────────────────────────────────────────


class EntityItem(_Wire):
    """An entity as returned by graph reads."""

    name: str
    entity_type: str = Field(alias="entityType")
    observations: list[str]
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class RelationItem(_Wire):
    """A relation as returned by graph reads."""

    from_entity: str = Field(alias="from")
    to_entity: str = Field(alias="to")
    relation_type: str = Field(alias="relationType")
    created_at: str = Field(alias="createdAt")


class GraphData(BaseModel):
    """Payload contract for ``read_graph``, ``search_nodes`` and ``open_nodes``."""

    entities: list[EntityItem]
    relations: list[RelationItem]


class DeleteEntitiesData(BaseModel):
    """Payload contract for ``MemoryService.delete_entities``."""

    model_config = ConfigDict(populate_by_name=True)

    deleted: list[str]
    not_found: list[str] = Field(alias="notFound")
    relations_deleted: int = Field(alias="relationsDeleted")
    observations_deleted: int = Field(alias="observationsDeleted")


class GraphStatsData(BaseModel):
    """Payload contract for ``MemoryService.stats``."""

    model_config = ConfigDict(populate_by_name=True)

    entities: int
    relations: int
    observations: int
    entity_types: dict[str, int] = Field(alias="entityTypes")
    relation_types: dict[str, int] = Field(alias="relationTypes")
    orphans: list[str]
    components: int
