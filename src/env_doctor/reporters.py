"""Console and JSON output for analysis and matrix results."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from .__version import __version__
from .matrix import matrix_to_dict

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import AnalysisResult, Issue, MatrixResult

ISSUE_TYPE_LABELS = {
    "missing": "Missing Variables",
    "unused": "Unused Variables",
    "type-mismatch": "Type Mismatches",
    "invalid-value": "Invalid Values",
    "sync-drift": "Sync Drift",
    "secret-exposed": "Exposed Secrets",
}

_RED = "\033[91m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_BOLD = "\033[1m"
_RESET = "\033[0m"

_SEVERITY_COLORS = {"error": _RED, "warning": _YELLOW, "info": _BLUE}
_STATUS_LABELS = {"set": "set", "empty": "empty", "missing": "missing", "invalid": "invalid"}


class _Painter:
    """Wraps text in ANSI codes when enabled."""

    def __init__(self, enabled: bool):
        self.enabled = enabled

    def __call__(self, text: str, *codes: str) -> str:
        if not self.enabled or not codes:
            return text
        return f"{''.join(codes)}{text}{_RESET}"


def _painter_for(stream: TextIO, color: bool | None) -> _Painter:
    if color is None:
        color = hasattr(stream, "isatty") and stream.isatty()
    return _Painter(color)


class _SourceLines:
    """Lazily reads the lines of reported files."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._cache: dict[str, list[str]] = {}

    def get(self, file: str, line: int) -> str:
        if file not in self._cache:
            try:
                content = (self.root / file).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                content = ""
            self._cache[file] = content.split("\n")
        lines = self._cache[file]
        return lines[line - 1] if 0 < line <= len(lines) else ""


def print_issue(
    issue: Issue,
    source: _SourceLines | None = None,
    stream: TextIO | None = None,
    color: bool | None = None,
) -> None:
    """Print a single issue in ruff-like format."""
    stream = stream or sys.stdout
    paint = _painter_for(stream, color)
    severity_color = _SEVERITY_COLORS.get(issue.severity, _RED)

    print(f"{paint(issue.type, severity_color)} {issue.message}", file=stream)

    location = issue.location
    if location is not None:
        col = location.column or 0
        print(f"  {paint('-->', _CYAN)} {location.file}:{location.line}:{col + 1}", file=stream)

        line_content = source.get(location.file, location.line) if source else ""
        if line_content:
            line_num_str = str(location.line)
            gutter = " " * len(line_num_str)
            print(f"{gutter} {paint('|', _CYAN)}", file=stream)
            print(f"{line_num_str} {paint('|', _CYAN)} {line_content}", file=stream)

            remaining_content = line_content[col:].rstrip()
            underline_width = len(remaining_content) if remaining_content else 1
            padding = len(line_num_str) + 3 + col
            print(" " * padding + paint("^" * underline_width, severity_color), file=stream)
            print(f"{gutter} {paint('|', _CYAN)}", file=stream)

    if issue.fix:
        print(f"  = {paint('help', _BOLD)}: {issue.fix}", file=stream)
    print(file=stream)


def group_issues_by_type(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    groups: dict[str, list[Issue]] = {}
    for issue in issues:
        groups.setdefault(issue.type, []).append(issue)
    return groups


def report_to_console(
    result: AnalysisResult,
    root: str | Path = ".",
    verbose: bool = False,
    max_issues_per_category: int = 10,
    stream: TextIO | None = None,
    color: bool | None = None,
) -> None:
    """Print an analysis result grouped by issue type, ending with a summary line."""
    stream = stream or sys.stdout
    paint = _painter_for(stream, color)
    source = _SourceLines(root)

    print(f"{paint('env-doctor', _BOLD, _CYAN)} {__version__}", file=stream)
    print(f"Framework: {result.framework}", file=stream)
    print(
        f"Scanned {result.stats.files_scanned} file(s), "
        f"{len(result.declared)} declared variable(s)",
        file=stream,
    )
    print(file=stream)

    for issue_type, issues in group_issues_by_type(result.issues).items():
        label = ISSUE_TYPE_LABELS.get(issue_type, issue_type)
        noun = "issue" if len(issues) == 1 else "issues"
        header_color = _SEVERITY_COLORS.get(issues[0].severity, _RED)
        print(paint(f"{label} ({len(issues)} {noun})", _BOLD, header_color), file=stream)
        print(file=stream)

        shown = issues if verbose else issues[:max_issues_per_category]
        for issue in shown:
            print_issue(issue, source, stream, paint.enabled)
        if len(shown) < len(issues):
            print(f"  ... and {len(issues) - len(shown)} more", file=stream)
            print(file=stream)

    if verbose:
        for error in result.parse_errors:
            print(f"{error.file}:{error.line}: {error.message}", file=stream)
        for error in result.scan_errors:
            print(f"{error.file}: {error.message}", file=stream)

    stats = result.stats
    if result.issues:
        print(
            f"Found {stats.error_count} error(s), {stats.warning_count} warning(s) and "
            f"{stats.info_count} info message(s) in {stats.files_scanned} file(s) "
            f"({stats.duration_ms}ms)",
            file=stream,
        )
    else:
        print(
            paint(f"No issues found in {stats.files_scanned} file(s)", _GREEN)
            + f" ({stats.duration_ms}ms)",
            file=stream,
        )


def to_json_report(result: AnalysisResult) -> dict[str, Any]:
    stats = result.stats
    return {
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "framework": result.framework,
        "summary": {
            "total_issues": len(result.issues),
            "errors": stats.error_count,
            "warnings": stats.warning_count,
            "info": stats.info_count,
            "files_scanned": stats.files_scanned,
            "declaration_files_parsed": stats.declaration_files_parsed,
            "duration_ms": stats.duration_ms,
        },
        "issues": [issue.to_dict() for issue in result.issues],
        "variables": {
            "declared": [
                {
                    "name": v.name,
                    "file": v.file,
                    "line": v.line,
                    "has_value": bool(v.value),
                    "is_secret": v.is_secret,
                }
                for v in result.declared
            ],
            "used": [
                {
                    "name": u.name,
                    "file": u.file,
                    "line": u.line,
                    "access_pattern": u.access_pattern,
                    "is_client_side": u.is_client_side,
                }
                for u in result.usages
            ],
        },
    }


def report_to_json(result: AnalysisResult, indent: int | None = 2) -> str:
    return json.dumps(to_json_report(result), indent=indent)


def report_issues_only(issues: list[Issue]) -> str:
    """Minimal JSON document holding just the issues."""
    return json.dumps(
        {"count": len(issues), "issues": [issue.to_dict() for issue in issues]}, indent=2
    )


def report_matrix_to_console(
    result: MatrixResult, stream: TextIO | None = None, color: bool | None = None
) -> None:
    """Print the variable x environment grid followed by the row issues."""
    stream = stream or sys.stdout
    paint = _painter_for(stream, color)

    header = ["Variable", *result.environments, "Status"]
    table = [header]
    for row in result.rows:
        cells = []
        for env in result.environments:
            info = row.environments[env]
            if info.status == "missing" and info.valid:
                cells.append("-")
            else:
                cells.append(_STATUS_LABELS[info.status])
        table.append([row.name, *cells, row.status])

    widths = [max(len(r[i]) for r in table) for i in range(len(header))]

    def render(cells: list[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    print(paint(render(header), _BOLD), file=stream)
    print("  ".join("-" * width for width in widths), file=stream)
    for cells in table[1:]:
        line = render(cells)
        status = cells[-1]
        print(paint(line, _SEVERITY_COLORS[status]) if status != "ok" else line, file=stream)
    print(file=stream)

    for issue in result.issues:
        severity_color = _SEVERITY_COLORS.get(issue.severity, _RED)
        print(
            f"{paint(issue.type, severity_color)} {issue.variable}: {issue.message}", file=stream
        )
        if issue.fix:
            print(f"  = {paint('help', _BOLD)}: {issue.fix}", file=stream)
    if result.issues:
        print(file=stream)

    summary = result.summary
    print(
        f"{summary.consistent_variables}/{summary.total_variables} variable(s) consistent "
        f"across {len(result.environments)} environment(s): {summary.error_count} error(s), "
        f"{summary.warning_count} warning(s), {summary.info_count} info",
        file=stream,
    )


def report_matrix_to_json(result: MatrixResult, indent: int | None = 2) -> str:
    return json.dumps(matrix_to_dict(result), indent=indent)
