"""Text and position helpers shared by the language server features."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range

if TYPE_CHECKING:
    from collections.abc import Iterable

    from env_doctor.models import Issue

_SEVERITIES = {
    "error": DiagnosticSeverity.Error,
    "warning": DiagnosticSeverity.Warning,
    "info": DiagnosticSeverity.Information,
}


def is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def word_at_position(line: str, character: int) -> tuple[str, int, int] | None:
    """Identifier under the cursor as ``(word, start, end)``, or None."""
    if character > len(line):
        return None

    start = character
    end = character
    while start > 0 and is_word_char(line[start - 1]):
        start -= 1
    while end < len(line) and is_word_char(line[end]):
        end += 1

    if start == end:
        return None
    return line[start:end], start, end


def apply_content_changes(content: str, changes: Iterable) -> str:
    """Apply LSP content changes (incremental or full) to a document buffer."""
    for change in changes:
        range_obj = getattr(change, "range", None)
        if range_obj is None:
            # Full document change
            content = change.text
            continue

        lines = content.split("\n")
        start = _offset(lines, range_obj.start.line, range_obj.start.character)
        end = _offset(lines, range_obj.end.line, range_obj.end.character)
        content = content[:start] + change.text + content[end:]
    return content


def _offset(lines: list[str], line: int, character: int) -> int:
    if line >= len(lines):
        return sum(len(text) + 1 for text in lines) - 1
    offset = sum(len(text) + 1 for text in lines[:line])
    return offset + min(character, len(lines[line]))


def issue_to_diagnostic(issue: Issue, lines: list[str]) -> Diagnostic:
    """Diagnostic from the issue's column through the variable name on its line."""
    location = issue.location
    line = max(location.line - 1, 0) if location else 0
    line_text = lines[line] if line < len(lines) else ""
    start = location.column if location and location.column is not None else 0

    name_at = line_text.find(issue.variable, start)
    if name_at >= 0:
        end = name_at + len(issue.variable)
    else:
        end = len(line_text.rstrip())

    return Diagnostic(
        range=Range(
            start=Position(line=line, character=start),
            end=Position(line=line, character=max(end, start)),
        ),
        message=issue.message,
        severity=_SEVERITIES.get(issue.severity, DiagnosticSeverity.Warning),
        code=issue.type,
        source="env-doctor",
        data={"variable": issue.variable},
    )


def issues_to_diagnostics(issues: Iterable[Issue], file: str, content: str) -> list[Diagnostic]:
    """Diagnostics for the issues located in ``file``."""
    lines = content.split("\n")
    return [
        issue_to_diagnostic(issue, lines)
        for issue in issues
        if issue.location is not None and issue.location.file == file
    ]
