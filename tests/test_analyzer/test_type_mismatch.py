"""Tests for the type mismatch analyzer."""

from __future__ import annotations

import pytest

from env_doctor._analyzer import analyze_type_mismatch, mask_value
from env_doctor._analyzer.type_mismatch import most_common_type
from env_doctor._analyzer.validation import check_type, is_url, validate_constraints


class TestExplicitRules:
    """Test values checked against configured rules."""

    def test_number_rule(self, make_config, var, usage):
        config = make_config(variables={"PORT": {"type": "number"}})
        issues = analyze_type_mismatch([var("PORT", "abc")], [usage("PORT")], config)

        assert len(issues) == 1
        issue = issues[0]
        assert issue.type == "type-mismatch"
        assert issue.severity == "error"
        assert issue.message == 'Variable "PORT" should be a number but value "abc" is not numeric'
        assert issue.context == {"expected": "number", "value": "abc"}

    def test_valid_value_passes(self, make_config, var, usage):
        config = make_config(variables={"PORT": {"type": "number"}})
        assert analyze_type_mismatch([var("PORT", "8080")], [usage("PORT")], config) == []

    def test_unused_variable_is_not_checked(self, make_config, var):
        config = make_config(variables={"PORT": {"type": "number"}})
        assert analyze_type_mismatch([var("PORT", "abc")], [], config) == []

    def test_pattern_rule(self, make_config, var, usage):
        config = make_config(variables={"DATABASE_URL": {"pattern": "^postgres://"}})
        issues = analyze_type_mismatch(
            [var("DATABASE_URL", "mysql://localhost")], [usage("DATABASE_URL")], config
        )

        assert [(i.type, i.severity) for i in issues] == [("invalid-value", "error")]
        assert "doesn't match required pattern" in issues[0].message

    def test_enum_rule(self, make_config, var, usage):
        config = make_config(variables={"LOG_LEVEL": {"enum": ["debug", "info"]}})
        issues = analyze_type_mismatch(
            [var("LOG_LEVEL", "verbose")], [usage("LOG_LEVEL")], config
        )

        assert len(issues) == 1
        assert issues[0].message == 'Value of "LOG_LEVEL" must be one of: debug, info'

    def test_type_is_checked_before_enum(self, make_config, var, usage):
        config = make_config(variables={"RETRIES": {"type": "number", "enum": ["1", "2"]}})
        issues = analyze_type_mismatch([var("RETRIES", "many")], [usage("RETRIES")], config)

        assert issues[0].type == "type-mismatch"

    def test_secret_value_is_masked(self, make_config, var, usage):
        config = make_config(variables={"API_SECRET": {"type": "number", "secret": True}})
        issues = analyze_type_mismatch(
            [var("API_SECRET", "supersecret")], [usage("API_SECRET")], config
        )

        assert "supersecret" not in issues[0].message
        assert issues[0].context["value"] == "su****et"

    def test_explicit_rule_replaces_inferred_check(self, make_config, var, usage):
        config = make_config(variables={"MODE": {"enum": ["fast", "slow"]}})
        issues = analyze_type_mismatch(
            [var("MODE", "fast")], [usage("MODE", inferred_type="number")], config
        )
        assert issues == []


class TestInferredTypes:
    """Test values checked against how code uses them."""

    def test_number_usage(self, config, var, usage):
        issues = analyze_type_mismatch(
            [var("PORT", "abc")], [usage("PORT", line=4, inferred_type="number")], config
        )

        assert len(issues) == 1
        assert issues[0].severity == "warning"
        assert "used as a number at src/index.ts:4" in issues[0].message
        assert issues[0].context == {"used_at": "src/index.ts:4", "inferred_type": "number"}

    def test_boolean_usage(self, config, var, usage):
        used = [usage("DEBUG", inferred_type="boolean")]

        assert analyze_type_mismatch([var("DEBUG", "TRUE")], used, config) == []
        assert len(analyze_type_mismatch([var("DEBUG", "yes")], used, config)) == 1

    def test_json_usage(self, config, var, usage):
        used = [usage("CONFIG", inferred_type="json")]

        assert analyze_type_mismatch([var("CONFIG", '{"a": 1}')], used, config) == []
        assert len(analyze_type_mismatch([var("CONFIG", "{a: 1}")], used, config)) == 1

    def test_array_usage_is_info(self, config, var, usage):
        issues = analyze_type_mismatch(
            [var("HOSTS", "localhost")], [usage("HOSTS", inferred_type="array")], config
        )
        assert [i.severity for i in issues] == ["info"]

    def test_empty_value_is_not_checked(self, config, var, usage):
        used = [usage("PORT", inferred_type="number")]
        assert analyze_type_mismatch([var("PORT", "")], used, config) == []

    def test_most_frequent_type_wins(self, config, var, usage):
        used = [
            usage("VALUE", inferred_type="json"),
            usage("VALUE", inferred_type="number"),
            usage("VALUE", inferred_type="number"),
        ]
        issues = analyze_type_mismatch([var("VALUE", "abc")], used, config)
        assert issues[0].context["inferred_type"] == "number"

    def test_ignore(self, make_config, var, usage):
        config = make_config(ignore=["type-mismatch:PORT"])
        used = [usage("PORT", inferred_type="number")]
        assert analyze_type_mismatch([var("PORT", "abc")], used, config) == []


class TestHelpers:
    def test_most_common_type_tie_goes_to_first_seen(self):
        assert most_common_type(["boolean", "number", "number", "boolean"]) == "boolean"
        assert most_common_type([None, None]) is None

    def test_mask_value(self):
        assert mask_value("abc", False) == "abc"
        assert mask_value("abcd", True) == "****"
        assert mask_value("abcdef", True) == "ab****ef"

    @pytest.mark.parametrize(
        ("value", "expected_type", "valid"),
        [
            ("42", "number", True),
            ("4.2", "number", True),
            ("1e3", "number", False),
            ("Yes", "boolean", True),
            ("on", "boolean", False),
            ("[1, 2]", "json", True),
            ("https://example.com/path", "url", True),
            ("https://", "url", False),
            ("redis://cache:6379", "url", True),
            ("not a url", "url", False),
            ("dev@example.com", "email", True),
            ("dev@example", "email", False),
            ("anything", "string", True),
        ],
    )
    def test_check_type(self, value, expected_type, valid):
        assert check_type(value, expected_type) is valid

    def test_is_url_requires_scheme(self):
        assert not is_url("example.com")

    def test_validate_constraints_order(self):
        violation = validate_constraints("x", "number", "^y", ["z"])
        assert violation.kind == "type"

        violation = validate_constraints("5", "number", "^6", ["5"])
        assert violation.kind == "pattern"

        violation = validate_constraints("5", "number", "^5", ["6"])
        assert (violation.kind, violation.expected) == ("enum", ["6"])

        assert validate_constraints("5", "number", "^5", ["5"]) is None

    def test_case_insensitive_pattern_literal(self):
        assert validate_constraints("HTTPS://X", None, "/^https/i", None) is None
