"""
env-doctor Language Server Protocol implementation.
Publishes the analyzer issues as diagnostics and provides hover,
completion and go-to-definition for environment variable names, plus a
quick fix that declares missing ones.
"""

from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    CodeActionOptions,
    CodeActionParams,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    Hover,
    HoverParams,
    InitializeParams,
    InitializeResult,
    Location,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
    SaveOptions,
    ServerCapabilities,
    TextDocumentSyncKind,
    TextDocumentSyncOptions,
)
from pygls.server import LanguageServer

from .__version import __version__
from ._server import CodeActionMixin, CompletionMixin, HoverMixin, ValidationMixin
from ._server.utils import apply_content_changes, word_at_position

logger = logging.getLogger(__name__)

_TRIGGERS = [".", "[", '"', "'"]
_CODE_ACTIONS = CodeActionOptions(code_action_kinds=[CodeActionKind.QuickFix])


class EnvDoctorLanguageServer(
    ValidationMixin, HoverMixin, CompletionMixin, CodeActionMixin, LanguageServer
):
    """Language Server for environment variable analysis."""

    def _current_line(self, uri: str, line: int) -> str | None:
        if uri not in self.document_cache:
            return None
        lines = self.document_cache[uri]["content"].split("\n")
        if line >= len(lines):
            return None
        return lines[line]

    def _get_definition(self, name: str) -> Location | None:
        """Location of the surviving declaration of ``name``."""
        declared = next((v for v in self.declared if v.name == name), None)
        if declared is None or self.config is None:
            return None
        path = (Path(self.config.root) / declared.file).resolve()
        position = Position(line=max(declared.line - 1, 0), character=0)
        return Location(uri=path.as_uri(), range=Range(start=position, end=position))


def create_server() -> EnvDoctorLanguageServer:
    """Create a language server with every feature registered."""
    server = EnvDoctorLanguageServer("env-doctor", __version__)

    @server.feature("initialize")
    def initialize(params: InitializeParams) -> InitializeResult:
        """Initialize the language server."""
        logger.info("Initializing env-doctor language server")

        if params.workspace_folders:
            server.workspace_root = server._uri_to_path(params.workspace_folders[0].uri)
        elif params.root_uri:
            server.workspace_root = server._uri_to_path(params.root_uri)
        elif params.root_path:
            server.workspace_root = params.root_path

        logger.info(f"Workspace root: {server.workspace_root}")

        return InitializeResult(
            capabilities=ServerCapabilities(
                text_document_sync=TextDocumentSyncOptions(
                    open_close=True,
                    change=TextDocumentSyncKind.Incremental,
                    save=SaveOptions(include_text=False),
                ),
                completion_provider=CompletionOptions(trigger_characters=_TRIGGERS),
                hover_provider=True,
                definition_provider=True,
                code_action_provider=_CODE_ACTIONS,
            )
        )

    @server.feature("textDocument/didOpen")
    def did_open(params: DidOpenTextDocumentParams):
        """Handle document open event."""
        uri = params.text_document.uri
        server._analyze_document(uri, params.text_document.text)
        logger.debug(f"Opened document: {uri}")

    @server.feature("textDocument/didChange")
    def did_change(params: DidChangeTextDocumentParams):
        """Handle document change event."""
        uri = params.text_document.uri
        if uri not in server.document_cache:
            return
        content = apply_content_changes(
            server.document_cache[uri]["content"], params.content_changes
        )
        server._analyze_document(uri, content)

    @server.feature("textDocument/didSave")
    def did_save(params: DidSaveTextDocumentParams):
        """Rescan the workspace from disk after a save."""
        uri = params.text_document.uri
        server._invalidate(uri)
        if uri in server.document_cache:
            server._analyze_workspace()

    @server.feature("textDocument/didClose")
    def did_close(params: DidCloseTextDocumentParams):
        uri = params.text_document.uri
        server.document_cache.pop(uri, None)
        server._publish_diagnostics(uri, [])

    @server.feature("textDocument/completion", CompletionOptions(trigger_characters=_TRIGGERS))
    def completion(params: CompletionParams) -> CompletionList:
        """Provide completion suggestions."""
        current_line = server._current_line(params.text_document.uri, params.position.line)
        if current_line is None:
            return CompletionList(is_incomplete=False, items=[])
        items = server._get_completions(current_line, params.position.character)
        return CompletionList(is_incomplete=False, items=items)

    @server.feature("textDocument/hover")
    def hover(params: HoverParams) -> Hover | None:
        """Provide hover information."""
        position = params.position
        current_line = server._current_line(params.text_document.uri, position.line)
        if current_line is None:
            return None

        word = word_at_position(current_line, position.character)
        if word is None:
            return None
        name, start, end = word

        hover_info = server._get_hover_info(name)
        if not hover_info:
            return None

        return Hover(
            contents=MarkupContent(kind=MarkupKind.Markdown, value=hover_info),
            range=Range(
                start=Position(line=position.line, character=start),
                end=Position(line=position.line, character=end),
            ),
        )

    @server.feature("textDocument/definition")
    def definition(params: DefinitionParams) -> Location | None:
        """Jump from a variable name to its declaration."""
        position = params.position
        current_line = server._current_line(params.text_document.uri, position.line)
        if current_line is None:
            return None

        word = word_at_position(current_line, position.character)
        if word is None:
            return None
        return server._get_definition(word[0])

    @server.feature("textDocument/codeAction", _CODE_ACTIONS)
    def code_action(params: CodeActionParams) -> list[CodeAction]:
        """Offer to declare variables reported as missing."""
        return server._get_code_actions(params.context.diagnostics)

    return server
