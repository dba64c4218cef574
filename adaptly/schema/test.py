"""Unit tests for the Schema module."""

import copy
import json

import pytest

from adaptly.schema import (
    ArgumentType,
    ComponentSchema,
    ConfigurationError,
    export_llm_schema,
    load_schema,
    validate_schema,
)


def _card(**overrides):
    entry = {
        "description": "Summary card with a title",
        "props": {"title": {"type": "string", "required": True}},
        "useCases": ["overview"],
        "space": {"min": [1, 1], "max": [4, 3], "preferred": [2, 1]},
    }
    entry.update(overrides)
    return entry


class TestValidateSchemaCompleteness:
    """A schema fails as soon as any element type is incomplete."""

    @pytest.mark.unit
    def test_valid_schema_passes(self, schema_document):
        schema = validate_schema(schema_document)
        assert isinstance(schema, ComponentSchema)
        assert "MetricCard" in schema
        assert schema.version == "1.0.0"

    @pytest.mark.unit
    def test_no_components(self):
        with pytest.raises(ConfigurationError, match="at least one component"):
            validate_schema({"version": "1.0.0", "components": {}})

    @pytest.mark.unit
    def test_missing_components_section(self):
        with pytest.raises(ConfigurationError):
            validate_schema({"version": "1.0.0"})

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "field_name",
        ["description", "props", "useCases", "space"],
    )
    def test_missing_required_field(self, field_name):
        entry = _card()
        del entry[field_name]
        with pytest.raises(ConfigurationError, match="Card"):
            validate_schema({"components": {"Card": entry}})

    @pytest.mark.unit
    @pytest.mark.parametrize("bound", ["min", "max", "preferred"])
    def test_space_hint_missing_bound(self, bound):
        entry = _card()
        del entry["space"][bound]
        with pytest.raises(ConfigurationError, match=bound):
            validate_schema({"components": {"Card": entry}})

    @pytest.mark.unit
    def test_empty_arguments_rejected(self):
        with pytest.raises(ConfigurationError, match="arguments"):
            validate_schema({"components": {"Card": _card(props={})}})

    @pytest.mark.unit
    def test_empty_use_cases_rejected(self):
        with pytest.raises(ConfigurationError, match="useCases"):
            validate_schema({"components": {"Card": _card(useCases=[])}})

    @pytest.mark.unit
    def test_one_bad_type_fails_whole_schema(self, schema_document):
        document = copy.deepcopy(schema_document)
        document["components"]["Broken"] = _card(description="")
        with pytest.raises(ConfigurationError, match="Broken"):
            validate_schema(document)

    @pytest.mark.unit
    def test_unknown_argument_type_rejected(self):
        entry = _card(props={"title": {"type": "function", "required": True}})
        with pytest.raises(ConfigurationError):
            validate_schema({"components": {"Card": entry}})

    @pytest.mark.unit
    def test_negative_space_hint_rejected(self):
        entry = _card(space={"min": [-1, 1], "max": [4, 3], "preferred": [2, 1]})
        with pytest.raises(ConfigurationError):
            validate_schema({"components": {"Card": entry}})


class TestValidateSchemaShapes:
    """Accepted input shapes and idempotence."""

    @pytest.mark.unit
    def test_idempotent(self, schema_document):
        once = validate_schema(schema_document)
        twice = validate_schema(once)
        assert once == twice

    @pytest.mark.unit
    def test_does_not_mutate_input(self, schema_document):
        before = copy.deepcopy(schema_document)
        validate_schema(schema_document)
        assert schema_document == before

    @pytest.mark.unit
    def test_list_form(self):
        schema = validate_schema({"components": [{"name": "Card", **_card()}]})
        assert schema.names == ["Card"]

    @pytest.mark.unit
    def test_list_form_duplicate_names(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            validate_schema(
                {"components": [{"name": "Card", **_card()}, {"name": "Card", **_card()}]}
            )

    @pytest.mark.unit
    def test_camel_case_aliases(self):
        entry = {
            "description": "Card",
            "arguments": {
                "tone": {"type": "text", "allowedValues": ["up", "down"]},
            },
            "useCases": ["trend"],
            "spaceHint": {"min": [1, 1], "max": [2, 2], "preferred": [1, 1]},
        }
        schema = validate_schema({"components": {"Trend": entry}})
        spec = schema.get("Trend").arguments["tone"]
        assert spec.allowed_values == ["up", "down"]
        assert spec.required is False


class TestArgumentTypes:
    """Type tag normalization."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("string", ArgumentType.TEXT),
            ("number", ArgumentType.NUMBER),
            ("boolean", ArgumentType.BOOLEAN),
            ("array", ArgumentType.LIST),
            ("object", ArgumentType.STRUCTURED),
            ("Text", ArgumentType.TEXT),
        ],
    )
    def test_aliases(self, raw, expected):
        entry = _card(props={"x": {"type": raw}})
        schema = validate_schema({"components": {"Card": entry}})
        assert schema.get("Card").arguments["x"].type == expected


class TestLoadSchema:
    """Loading from disk."""

    @pytest.mark.unit
    def test_load_valid_file(self, tmp_path, schema_document):
        path = tmp_path / "adaptly.json"
        path.write_text(json.dumps(schema_document))
        schema = load_schema(path)
        assert "MetricCard" in schema

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_schema(tmp_path / "absent.json")

    @pytest.mark.unit
    def test_invalid_json(self, tmp_path):
        path = tmp_path / "adaptly.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_schema(path)


class TestExportLLMSchema:
    """Prompt-oriented export."""

    @pytest.mark.unit
    def test_export_shape(self, metric_schema):
        exported = export_llm_schema(metric_schema)
        card = exported["components"]["MetricCard"]

        assert exported["version"] == "1.0.0"
        assert card["arguments"]["title"] == {"type": "text", "required": True}
        assert card["space"]["preferred"] == [2, 1]
        assert card["useCases"]

    @pytest.mark.unit
    def test_export_includes_allowed_values(self, metric_schema):
        exported = export_llm_schema(metric_schema)
        change_type = exported["components"]["MetricCard"]["arguments"]["changeType"]
        assert change_type["allowed"] == ["positive", "negative", "neutral"]

    @pytest.mark.unit
    def test_export_is_json_serializable(self, metric_schema):
        json.dumps(export_llm_schema(metric_schema))

    @pytest.mark.unit
    def test_required_arguments(self, metric_schema):
        assert metric_schema.get("MetricCard").required_arguments == ["title", "value"]
