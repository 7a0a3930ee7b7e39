"""Tests for the knowledge-graph input and payload contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from memdbctl.services.contracts import (
    EntityInput,
    GraphStatsData,
    ObservationAddition,
    RelationInput,
    dump_validated,
)


class TestInputs:
    def test_entity_accepts_wire_and_field_names(self) -> None:
        wire = EntityInput.model_validate({"name": "a", "entityType": "t"})
        python = EntityInput(name="a", entity_type="t")
        assert wire == python
        assert wire.observations == []

    def test_entity_blank_type(self) -> None:
        with pytest.raises(ValidationError):
            EntityInput.model_validate({"name": "a", "entityType": " "})

    def test_relation_triple(self) -> None:
        rel = RelationInput.model_validate({"from": "a", "to": "b", "relationType": "knows"})
        assert rel.triple == ("a", "b", "knows")

    def test_relation_requires_all_fields(self) -> None:
        with pytest.raises(ValidationError):
            RelationInput.model_validate({"from": "a", "relationType": "knows"})

    def test_observation_addition_requires_list(self) -> None:
        with pytest.raises(ValidationError):
            ObservationAddition.model_validate({"entityName": "a", "contents": "single"})


class TestDumpValidated:
    def test_emits_camel_case(self) -> None:
        data = dump_validated(
            GraphStatsData,
            {
                "entities": 1,
                "relations": 0,
                "observations": 0,
                "entityTypes": {"t": 1},
                "relationTypes": {},
                "orphans": ["a"],
                "components": 1,
            },
        )
        assert "entityTypes" in data
        assert "entity_types" not in data

    def test_rejects_missing_keys(self) -> None:
        with pytest.raises(ValidationError):
            dump_validated(GraphStatsData, {"entities": 1})
