"""Tests for the missing variable analyzer."""

from __future__ import annotations

from env_doctor._analyzer import analyze_missing, get_missing_summary
from env_doctor.constants import DYNAMIC_VARIABLE


class TestMissingAnalyzer:
    def test_undeclared_usage_is_a_warning(self, config, usage):
        issues = analyze_missing([], [usage("DATABASE_URL", line=3, column=14)], config)

        assert len(issues) == 1
        issue = issues[0]
        assert issue.type == "missing"
        assert issue.severity == "warning"
        assert issue.variable == "DATABASE_URL"
        assert str(issue.location) == "src/index.ts:3:14"
        assert issue.fix == "Add DATABASE_URL= to your .env file"

    def test_reported_once_at_first_usage(self, config, usage):
        used = [usage("API_URL", "src/a.ts", 5), usage("API_URL", "src/b.ts", 1)]
        issues = analyze_missing([], used, config)

        assert len(issues) == 1
        assert issues[0].location.file == "src/a.ts"

    def test_declared_and_dynamic_are_skipped(self, config, var, usage):
        used = [usage("FOO"), usage(DYNAMIC_VARIABLE, access_pattern="dynamic")]
        assert analyze_missing([var("FOO", "1")], used, config) == []

    def test_required_rule_is_an_error(self, make_config, usage):
        config = make_config(variables={"API_URL": {"required": True}})
        issues = analyze_missing([], [usage("API_URL")], config)

        assert [i.severity for i in issues] == ["error"]

    def test_rule_with_default_is_skipped(self, make_config, usage):
        config = make_config(variables={"PORT": {"default": 3000}})
        assert analyze_missing([], [usage("PORT")], config) == []

    def test_required_but_unused_is_still_reported(self, make_config):
        config = make_config(variables={"SECRET_KEY": {"required": True}})
        issues = analyze_missing([], [], config)

        assert len(issues) == 1
        assert issues[0].severity == "error"
        assert issues[0].location is None
        assert "Required variable" in issues[0].message

    def test_ignore(self, make_config, usage):
        config = make_config(ignore=["LEGACY_*", "missing:OPTIONAL"])
        used = [usage("LEGACY_TOKEN"), usage("OPTIONAL"), usage("OTHER")]

        assert [i.variable for i in analyze_missing([], used, config)] == ["OTHER"]

    def test_ignore_scoped_to_other_analyzer(self, make_config, usage):
        config = make_config(ignore=["unused:OPTIONAL"])
        assert len(analyze_missing([], [usage("OPTIONAL")], config)) == 1

    def test_summary(self, make_config, usage):
        config = make_config(variables={"A": {"required": True}})
        issues = analyze_missing([], [usage("A"), usage("B")], config)

        assert get_missing_summary(issues) == {"required": ["A"], "optional": ["B"]}
