from __future__ import annotations

import pytest
from lsprotocol.types import CodeActionKind, Diagnostic, Position, Range

from env_doctor.server import EnvDoctorLanguageServer, create_server

SOURCE = "const url = process.env.API_URL;\nconst key = process.env.MISSING_KEY;\n"


@pytest.fixture
def workspace(project):
    root = project(
        {
            ".env": "API_URL=https://api.example.com\nDB_PASSWORD=supersecret123\n",
            "src/index.ts": SOURCE,
            "env-doctor.json": '{"variables": {"API_URL": {"description": "Backend"}}}',
        }
    )
    return root.resolve()


@pytest.fixture
def server(workspace, monkeypatch):
    server = EnvDoctorLanguageServer("env-doctor-test", "0.0.0")
    server.workspace_root = str(workspace)
    server.published = {}

    def record(uri, diagnostics):
        server.published[uri] = diagnostics

    monkeypatch.setattr(server, "_publish_diagnostics", record)
    return server


class TestWorkspaceAnalysis:
    def test_open_document_publishes_diagnostics(self, server, workspace):
        uri = (workspace / "src/index.ts").as_uri()
        server._analyze_document(uri, SOURCE)

        diagnostics = server.published[uri]
        assert [d.code for d in diagnostics] == ["missing"]
        assert diagnostics[0].range.start.line == 1
        assert diagnostics[0].range.end.character == SOURCE.split("\n")[1].index(";")

    def test_unsaved_buffer_is_rescanned(self, server, workspace):
        uri = (workspace / "src/index.ts").as_uri()
        server._analyze_document(uri, SOURCE)
        server._analyze_document(uri, "const url = process.env.API_URL;\n")

        assert server.published[uri] == []
        assert "MISSING_KEY" not in {u.name for u in server.usages}

    def test_unsaved_declaration_buffer(self, server, workspace):
        env_uri = (workspace / ".env").as_uri()
        server._analyze_document(env_uri, "API_URL=x\nDB_PASSWORD=\nMISSING_KEY=1\n")

        assert "MISSING_KEY" in {v.name for v in server.declared}
        assert "missing" not in {issue.type for issue in server.issues}

    def test_invalidate(self, server, workspace):
        server._analyze_workspace()
        assert server.disk_usages is not None

        server._invalidate((workspace / "src/index.ts").as_uri())
        assert server.disk_usages is None
        assert server.config is not None

        server._invalidate((workspace / "env-doctor.json").as_uri())
        assert server.config is None


class TestFeatures:
    @pytest.fixture(autouse=True)
    def analyzed(self, server):
        server._analyze_workspace()

    def test_hover(self, server):
        text = server._get_hover_info("API_URL")

        assert "Backend" in text
        assert "**Declared in**: `.env:1`" in text
        assert "**Used**: 1 time in 1 file(s)" in text
        assert server._get_hover_info("console") is None

    def test_hover_masks_secret(self, server):
        text = server._get_hover_info("DB_PASSWORD")
        assert "supersecret123" not in text

    def test_completion(self, server):
        items = server._get_completions("const a = process.env.AP", 24)
        assert [item.label for item in items] == ["API_URL"]
        assert items[0].detail == ".env:1"

    def test_completion_lists_everything_after_dot(self, server):
        labels = [item.label for item in server._get_completions("process.env.", 12)]
        assert labels == ["API_URL", "DB_PASSWORD"]

    def test_no_completion_outside_env_access(self, server):
        assert server._get_completions("const a = API", 13) == []

    def test_definition(self, server, workspace):
        location = server._get_definition("DB_PASSWORD")

        assert location.uri == (workspace / ".env").as_uri()
        assert location.range.start.line == 1
        assert server._get_definition("MISSING_KEY") is None

    def test_current_line(self, server, workspace):
        uri = (workspace / "src/index.ts").as_uri()
        server.document_cache[uri] = {"content": SOURCE}

        assert server._current_line(uri, 1) == "const key = process.env.MISSING_KEY;"
        assert server._current_line(uri, 10) is None
        assert server._current_line("file:///elsewhere.ts", 0) is None


class TestCreateServer:
    def test_features_registered(self):
        server = create_server()
        features = server.lsp.fm.features

        assert isinstance(server, EnvDoctorLanguageServer)
        for method in (
            "textDocument/didOpen",
            "textDocument/didChange",
            "textDocument/didSave",
            "textDocument/didClose",
            "textDocument/completion",
            "textDocument/hover",
            "textDocument/definition",
            "textDocument/codeAction",
        ):
            assert method in features


def missing_diagnostic(name):
    position = Position(line=0, character=0)
    return Diagnostic(
        range=Range(start=position, end=position),
        message=f'Missing environment variable "{name}"',
        code="missing",
        data={"variable": name},
    )


class TestCodeActions:
    def test_quick_fix_for_published_diagnostic(self, server, workspace):
        uri = (workspace / "src/index.ts").as_uri()
        server._analyze_document(uri, SOURCE)

        actions = server._get_code_actions(server.published[uri])

        assert len(actions) == 1
        action = actions[0]
        assert action.title == "Add MISSING_KEY= to .env"
        assert action.kind == CodeActionKind.QuickFix
        [edit] = action.edit.changes[(workspace / ".env").as_uri()]
        assert edit.new_text == "MISSING_KEY=\n"
        assert edit.range.start == Position(line=2, character=0)

    def test_other_diagnostics_are_ignored(self, server):
        server._analyze_workspace()
        unused = missing_diagnostic("DB_PASSWORD")
        unused.code = "unused"

        assert server._get_code_actions([unused]) == []
        assert server._get_code_actions([missing_diagnostic("API_URL")]) == []

    def test_buffer_without_trailing_newline(self, server, workspace):
        env_uri = (workspace / ".env").as_uri()
        server._analyze_document(env_uri, "API_URL=x")

        [action] = server._get_code_actions([missing_diagnostic("NEW_KEY")])
        [edit] = action.edit.changes[env_uri]
        assert edit.new_text == "\nNEW_KEY=\n"
        assert edit.range.start == Position(line=0, character=9)

    def test_creates_missing_declaration_file(self, server, workspace):
        (workspace / ".env").unlink()
        server._analyze_workspace()

        [action] = server._get_code_actions([missing_diagnostic("NEW_KEY")])
        create, change = action.edit.document_changes
        assert create.uri == (workspace / ".env").as_uri()
        assert change.edits[0].new_text == "NEW_KEY=\n"
