"""Tests for schema parsing and schema file loading."""

import pytest

from admit._internal.io.schema_file import load_schema
from admit.kernel.invariant import Comparison, ConfigRef, ExecutionRef, Implication, StringLiteral
from admit.kernel.schema import ConfigType, SchemaError, parse_schema


class TestParseSchema:

    def test_sample_schema(self, sample_schema):
        assert sample_schema.keys() == ["db.url", "db.url.env", "log.level", "payments.mode"]
        mode = sample_schema.config["payments.mode"]
        assert mode.type == ConfigType.ENUM
        assert mode.required
        assert mode.values == ("test", "live")
        assert [inv.name for inv in sample_schema.invariants] == ["prod-db-guard"]
        assert sorted(sample_schema.environments) == ["prod", "staging"]

    def test_invariant_is_parsed_at_load(self, sample_schema):
        expr = sample_schema.invariants[0].expr
        assert expr == Implication(
            antecedent=Comparison(ExecutionRef("env"), "==", StringLiteral("prod")),
            consequent=Comparison(ConfigRef("db.url.env"), "==", StringLiteral("prod")),
        )

    def test_scalar_and_list_rule_values(self, sample_schema):
        prod = sample_schema.contract("prod")
        assert prod.allow["payments.mode"].values == ("live",)
        assert prod.deny["db.url"].values == ("*localhost*", "*127.0.0.1*")
        assert prod.deny["db.url"].is_glob
        assert not prod.allow["payments.mode"].is_glob
        assert sample_schema.contract("staging").allow["payments.mode"].values == ("test", "live")

    def test_missing_sections_are_empty(self):
        schema = parse_schema({"config": {"a": {"type": "string"}}})
        assert schema.invariants == ()
        assert schema.environments == {}

    def test_empty_document(self):
        schema = parse_schema(None)
        assert schema.config == {}

    def test_null_sections_are_empty(self):
        schema = parse_schema({"config": None, "invariants": None, "environments": None})
        assert schema.keys() == []

    def test_top_level_must_be_mapping(self):
        with pytest.raises(SchemaError, match="mapping"):
            parse_schema(["config"])

    def test_unknown_type(self):
        with pytest.raises(SchemaError, match="unknown type 'int' for config 'port'"):
            parse_schema({"config": {"port": {"type": "int"}}})

    def test_enum_requires_values(self):
        with pytest.raises(SchemaError, match="enum type requires 'values' for config 'mode'"):
            parse_schema({"config": {"mode": {"type": "enum"}}})

    def test_unknown_fields_ignored(self):
        schema = parse_schema({
            "version": 1,
            "config": {"db.url": {"type": "string", "required": True, "description": "primary DSN"}},
            "invariants": [{"name": "guard", "rule": 'db.url != ""', "owner": "platform"}],
            "environments": {"prod": {"allow": {"db.url": "x"}, "notes": "strict"}},
        })
        assert schema.keys() == ["db.url"]
        assert schema.config["db.url"].required
        assert [inv.name for inv in schema.invariants] == ["guard"]

    def test_wrong_field_type_rejected(self):
        with pytest.raises(SchemaError, match="invalid schema: config.a.required"):
            parse_schema({"config": {"a": {"type": "string", "required": "maybe"}}})

    def test_non_string_enum_values_read_as_text(self):
        schema = parse_schema({
            "config": {
                "replicas": {"type": "enum", "values": [1, 3, 5]},
                "ratio": {"type": "enum", "values": [0.5, 1.5]},
                "flag": {"type": "enum", "values": [True, False]},
            },
        })
        assert schema.config["replicas"].values == ("1", "3", "5")
        assert schema.config["ratio"].values == ("0.5", "1.5")
        assert schema.config["flag"].values == ("true", "false")

    def test_non_string_rule_values_read_as_text(self):
        schema = parse_schema({
            "config": {"replicas": {"type": "string"}, "debug": {"type": "string"}},
            "environments": {"prod": {
                "allow": {"replicas": 3},
                "deny": {"debug": [True, 1]},
            }},
        })
        prod = schema.contract("prod")
        assert prod.allow["replicas"].values == ("3",)
        assert prod.deny["debug"].values == ("true", "1")

    def test_yaml_file_with_numeric_values(self, tmp_path):
        path = tmp_path / "admit.yaml"
        path.write_text(
            "version: 1\n"
            "config:\n"
            "  replicas:\n"
            "    type: enum\n"
            "    values: [1, 3, 5]\n"
            "    description: pod count\n"
            "environments:\n"
            "  prod:\n"
            "    allow:\n"
            "      replicas: 3\n",
            encoding="utf-8",
        )
        schema = load_schema(path)
        assert schema.config["replicas"].values == ("1", "3", "5")
        assert schema.contract("prod").allow["replicas"].values == ("3",)

    def test_path_attached_to_error(self):
        with pytest.raises(SchemaError) as excinfo:
            parse_schema({"config": {"port": {"type": "int"}}}, path="admit.yaml")
        assert excinfo.value.path == "admit.yaml"
        assert str(excinfo.value).startswith("admit.yaml: ")


class TestInvariantDeclarations:

    def _parse(self, invariants):
        return parse_schema({
            "config": {"db.url": {"type": "string"}},
            "invariants": invariants,
        })

    def test_missing_name(self):
        with pytest.raises(SchemaError, match="invariant at index 0: missing required field 'name'"):
            self._parse([{"rule": 'db.url == "x"'}])

    def test_invalid_name(self):
        with pytest.raises(SchemaError, match="contains invalid characters"):
            self._parse([{"name": "has space", "rule": 'db.url == "x"'}])

    def test_duplicate_name(self):
        with pytest.raises(SchemaError, match="duplicate invariant name: 'guard'"):
            self._parse([
                {"name": "guard", "rule": 'db.url == "x"'},
                {"name": "guard", "rule": 'db.url != "y"'},
            ])

    def test_missing_rule(self):
        with pytest.raises(SchemaError, match="invariant 'guard': missing required field 'rule'"):
            self._parse([{"name": "guard"}])

    def test_bad_rule_syntax(self):
        with pytest.raises(SchemaError, match="invariant 'guard': invalid rule syntax"):
            self._parse([{"name": "guard", "rule": 'db.url = "x"'}])

    def test_undeclared_config_reference(self):
        with pytest.raises(SchemaError, match="undefined config key"):
            self._parse([{"name": "guard", "rule": 'db.host == "x"'}])


class TestEnvironmentDeclarations:

    def test_empty_rule_list_rejected(self):
        with pytest.raises(SchemaError, match="environment 'prod': allow rule for 'a' has no values"):
            parse_schema({
                "config": {"a": {"type": "string"}},
                "environments": {"prod": {"allow": {"a": []}}},
            })

    def test_question_mark_marks_glob(self):
        schema = parse_schema({
            "config": {"a": {"type": "string"}},
            "environments": {"prod": {"deny": {"a": "v?"}}},
        })
        assert schema.contract("prod").deny["a"].is_glob

    def test_null_allow_and_deny(self):
        schema = parse_schema({
            "config": {"a": {"type": "string"}},
            "environments": {"prod": {"allow": None}},
        })
        assert schema.contract("prod").allow == {}


class TestLoadSchema:

    def test_load_from_file(self, schema_file):
        schema = load_schema(schema_file)
        assert "db.url" in schema.config

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaError, match="schema file not found") as excinfo:
            load_schema(tmp_path / "nope.yaml")
        assert excinfo.value.path == str(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "admit.yaml"
        path.write_text("config: [unclosed\n", encoding="utf-8")
        with pytest.raises(SchemaError, match="invalid YAML"):
            load_schema(path)

    def test_semantic_error_carries_path(self, tmp_path):
        path = tmp_path / "admit.yaml"
        path.write_text("config:\n  a:\n    type: int\n", encoding="utf-8")
        with pytest.raises(SchemaError) as excinfo:
            load_schema(path)
        assert excinfo.value.path == str(path)
