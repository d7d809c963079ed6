"""Base class for the language server with the state shared by the mixins."""

from __future__ import annotations

import os
from pathlib import PurePath
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit

from pygls.server import LanguageServer

if TYPE_CHECKING:
    from env_doctor.config import EnvDoctorConfig
    from env_doctor.models import DeclaredVariable, Issue, Usage


class LSPServerBase(LanguageServer):
    """Base class defining the interface needed by mixins.

    Holds the workspace configuration, the open document buffers and the
    results of the latest workspace analysis.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.workspace_root: str | None = None
        self.config: EnvDoctorConfig | None = None
        self.framework = "node"
        self.document_cache: dict[str, dict[str, Any]] = {}
        # Usages found on disk, keyed by file; None until the first scan
        self.disk_usages: dict[str, list[Usage]] | None = None
        self.source_files: set[str] = set()
        self.declared: list[DeclaredVariable] = []
        self.usages: list[Usage] = []
        self.issues: list[Issue] = []

    def _uri_to_path(self, uri: str) -> str:
        """Convert URI to file path."""
        return unquote(urlsplit(uri).path)

    def _relative_path(self, uri: str) -> str | None:
        """Document path relative to the project root, or None when outside it."""
        root = self.config.root if self.config is not None else self.workspace_root
        if root is None:
            return None
        path = PurePath(self._uri_to_path(uri))
        try:
            return path.relative_to(os.path.abspath(root)).as_posix()
        except ValueError:
            return None

    def _open_documents(self) -> dict[str, str]:
        """Buffer contents of the open documents inside the project, keyed by relative path."""
        documents = {}
        for uri, entry in self.document_cache.items():
            file = self._relative_path(uri)
            if file is not None:
                documents[file] = entry["content"]
        return documents
