from __future__ import annotations

import io
import json

from env_doctor.config import config_from_dict
from env_doctor.matrix import analyze_matrix
from env_doctor.models import Issue, SourceLocation
from env_doctor.reporters import (
    _SourceLines,
    group_issues_by_type,
    print_issue,
    report_issues_only,
    report_matrix_to_console,
    report_matrix_to_json,
)


def missing_issue(line: int = 2, column: int = 5) -> Issue:
    return Issue(
        "missing",
        "warning",
        "API_KEY",
        'Variable "API_KEY" is used in code but not defined in any .env file',
        SourceLocation("src/index.ts", line, column),
        fix="Add API_KEY= to your .env file",
    )


class TestPrintIssue:
    def test_block_layout(self, project):
        root = project({"src/index.ts": "// setup\ncall(process.env.API_KEY);\n"})
        stream = io.StringIO()
        print_issue(missing_issue(), _SourceLines(root), stream, color=False)

        assert stream.getvalue().split("\n") == [
            'missing Variable "API_KEY" is used in code but not defined in any .env file',
            "  --> src/index.ts:2:6",
            "  |",
            "2 | call(process.env.API_KEY);",
            "         " + "^" * 21,
            "  |",
            "  = help: Add API_KEY= to your .env file",
            "",
            "",
        ]

    def test_without_source(self):
        stream = io.StringIO()
        print_issue(missing_issue(), None, stream, color=False)
        assert "  --> src/index.ts:2:6" in stream.getvalue()
        assert " | " not in stream.getvalue()

    def test_color(self):
        stream = io.StringIO()
        print_issue(missing_issue(), None, stream, color=True)
        assert "\033[93mmissing\033[0m" in stream.getvalue()


class TestJson:
    def test_issues_only(self):
        data = json.loads(report_issues_only([missing_issue()]))

        assert data["count"] == 1
        assert data["issues"][0]["variable"] == "API_KEY"
        assert data["issues"][0]["location"]["file"] == "src/index.ts"

    def test_group_issues_by_type_keeps_order(self):
        unused = Issue("unused", "warning", "OLD", "m")
        groups = group_issues_by_type([missing_issue(), unused, missing_issue(3)])

        assert list(groups) == ["missing", "unused"]
        assert len(groups["missing"]) == 2


class TestMatrixReport:
    def build(self, project):
        root = project({".env.a": "SHARED=1\nONLY_A=x\n", ".env.b": "SHARED=1\n"})
        config = config_from_dict(
            {"environments": {"a": {"files": [".env.a"]}, "b": {"files": [".env.b"]}}}, root
        )
        return analyze_matrix(config)

    def test_console_table(self, project):
        stream = io.StringIO()
        report_matrix_to_console(self.build(project), stream, color=False)
        lines = stream.getvalue().split("\n")

        assert lines[0].split() == ["Variable", "a", "b", "Status"]
        assert lines[2].split() == ["ONLY_A", "set", "-", "warning"]
        assert lines[3].split() == ["SHARED", "set", "set", "ok"]
        assert "inconsistent ONLY_A: Variable is missing in b but defined in a" in lines
        assert lines[-2].startswith("1/2 variable(s) consistent across 2 environment(s)")

    def test_json(self, project):
        data = json.loads(report_matrix_to_json(self.build(project)))

        assert data["summary"]["warning_count"] == 1
        assert data["matrix"]["ONLY_A"]["b"] == {"status": "missing", "valid": True}
