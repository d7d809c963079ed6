"""Tests for template drift detection and template generation."""

from __future__ import annotations

from env_doctor._analyzer import analyze_sync_drift, compare_template_with_env, generate_template


class TestSyncDrift:
    def test_declared_but_not_in_template(self, var):
        result = analyze_sync_drift([var("FOO", "1")], [], ".env.example")

        assert result.missing_from_template == ["FOO"]
        assert result.missing_from_env == []
        assert result.in_sync is False
        assert [(i.type, i.severity) for i in result.issues] == [("sync-drift", "warning")]
        assert result.issues[0].fix == "Add FOO= to .env.example"

    def test_template_but_not_declared(self, var):
        template = [var("BAR", "", line=4, file=".env.example")]
        result = analyze_sync_drift([], template, ".env.example")

        assert result.missing_from_env == ["BAR"]
        assert [i.severity for i in result.issues] == ["info"]
        assert str(result.issues[0].location) == ".env.example:4"

    def test_in_sync(self, var):
        result = analyze_sync_drift([var("FOO", "1")], [var("FOO", "")], ".env.example")

        assert result.in_sync
        assert result.issues == []

    def test_ignore(self, var):
        result = analyze_sync_drift(
            [var("LOCAL_ONLY", "1")], [], ".env.example", ignore=["sync-drift:LOCAL_*"]
        )
        assert result.in_sync


class TestGenerateTemplate:
    def test_grouped_and_masked(self, var):
        variables = [
            var("PORT", "3000"),
            var("DATABASE_URL", "postgres://u:p@localhost/db", is_secret=True),
            var("NEXT_PUBLIC_API_URL", "https://api.example.org"),
            var("FOO", "bar"),
        ]
        lines = generate_template(variables).split("\n")

        assert lines[0] == "# Environment Variables Template"
        assert lines.index("FOO=") < lines.index("PORT=3000")
        assert lines[lines.index("# Database") + 1] == "DATABASE_URL="
        assert lines[lines.index("# Next Public") + 1] == "NEXT_PUBLIC_API_URL=https://example.com"

    def test_without_comments_or_grouping(self, var):
        text = generate_template(
            [var("B", "2"), var("A", "1")], include_comments=False, group_by_prefix=False
        )
        assert text == "A=1\nB=2"

    def test_unmasked_values(self, var):
        text = generate_template(
            [var("API_KEY", "abc", is_secret=True)],
            include_comments=False,
            group_by_prefix=False,
            mask_secrets=False,
        )
        assert text == "API_KEY=abc"


def test_compare_template_with_env(var):
    template = [var("A", "1"), var("B", "x"), var("C", "")]
    env = [var("A", "2"), var("C", "set"), var("D", "new"), var("S", "v", is_secret=True)]

    diff = compare_template_with_env(template, env)

    assert diff["added"] == ["D", "S"]
    assert diff["removed"] == ["B"]
    assert diff["changed"] == [{"name": "A", "template_value": "1", "env_value": "2"}]
