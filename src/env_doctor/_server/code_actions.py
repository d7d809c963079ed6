"""Code action mixin offering quick fixes for missing variables."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    CreateFile,
    CreateFileOptions,
    OptionalVersionedTextDocumentIdentifier,
    Position,
    Range,
    TextDocumentEdit,
    TextEdit,
    WorkspaceEdit,
)

from .base import LSPServerBase

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lsprotocol.types import Diagnostic


class CodeActionMixin(LSPServerBase):
    """Turns ``missing`` diagnostics into edits on the first declaration file."""

    def _get_code_actions(self, diagnostics: Iterable[Diagnostic]) -> list[CodeAction]:
        if self.config is None or not self.config.declaration_files:
            return []

        target = self.config.declaration_files[0]
        path = (Path(self.config.root) / target).resolve()
        uri = path.as_uri()
        declared = {v.name for v in self.declared}

        actions = []
        seen = set()
        for diagnostic in diagnostics:
            name = _diagnostic_variable(diagnostic)
            if diagnostic.code != "missing" or name is None:
                continue
            if name in declared or name in seen:
                continue
            seen.add(name)
            actions.append(
                CodeAction(
                    title=f"Add {name}= to {target}",
                    kind=CodeActionKind.QuickFix,
                    diagnostics=[diagnostic],
                    edit=self._append_edit(uri, path, f"{name}=\n"),
                )
            )
        return actions

    def _append_edit(self, uri: str, path: Path, text: str) -> WorkspaceEdit:
        """Edit appending ``text`` to a declaration file, creating it when absent."""
        if uri in self.document_cache:
            content = self.document_cache[uri]["content"]
        elif path.is_file():
            content = path.read_text(encoding="utf-8", errors="replace")
        else:
            document = OptionalVersionedTextDocumentIdentifier(uri=uri, version=None)
            return WorkspaceEdit(
                document_changes=[
                    CreateFile(uri=uri, options=CreateFileOptions(ignore_if_exists=True)),
                    TextDocumentEdit(
                        text_document=document,
                        edits=[TextEdit(range=_point(0, 0), new_text=text)],
                    ),
                ]
            )

        lines = content.split("\n")
        end = _point(len(lines) - 1, len(lines[-1]))
        if content and not content.endswith("\n"):
            text = "\n" + text
        return WorkspaceEdit(changes={uri: [TextEdit(range=end, new_text=text)]})


def _diagnostic_variable(diagnostic: Diagnostic) -> str | None:
    data = diagnostic.data
    if isinstance(data, dict) and isinstance(data.get("variable"), str):
        return data["variable"]
    return None


def _point(line: int, character: int) -> Range:
    position = Position(line=line, character=character)
    return Range(start=position, end=position)
