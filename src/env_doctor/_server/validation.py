"""Validation mixin for workspace analysis and diagnostics."""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from env_doctor._analyzer import run_analyzers
from env_doctor._scanner import (
    find_files,
    parse_content,
    parse_file,
    scan_file_content,
    scan_files,
)
from env_doctor.config import load_config
from env_doctor.constants import CONFIG_FILENAMES
from env_doctor.frameworks import detect_framework

from .base import LSPServerBase
from .utils import issues_to_diagnostics

if TYPE_CHECKING:
    from lsprotocol.types import Diagnostic

    from env_doctor.config import EnvDoctorConfig
    from env_doctor.models import DeclaredVariable, Usage

logger = logging.getLogger(__name__)


class ValidationMixin(LSPServerBase):
    """Runs the analyzers over the workspace and publishes diagnostics."""

    def _ensure_config(self) -> EnvDoctorConfig:
        if self.config is None:
            self.config, config_file = load_config(root=self.workspace_root or ".")
            if config_file is not None:
                logger.info(f"Using config {config_file}")
            if self.config.framework == "auto":
                self.framework = detect_framework(self.config.root)
            else:
                self.framework = self.config.framework
        return self.config

    def _invalidate(self, uri: str | None = None):
        """Forget cached disk state; a saved config file also drops the configuration."""
        self.disk_usages = None
        if uri is not None and PurePath(self._uri_to_path(uri)).name in CONFIG_FILENAMES:
            self.config = None

    def _analyze_document(self, uri: str, content: str):
        """Store a document buffer and re-analyze the workspace."""
        self.document_cache[uri] = {"content": content}
        self._analyze_workspace()

    def _analyze_workspace(self):
        config = self._ensure_config()
        documents = self._open_documents()

        self.declared = self._parse_declarations(config.declaration_files, documents)
        self.usages = self._collect_usages(documents)
        template = None
        if config.template_file:
            template = self._parse_template(config.template_file, documents)

        self.issues = run_analyzers(
            self.declared, self.usages, config, template=template, framework=self.framework
        )
        logger.debug(f"Workspace analysis produced {len(self.issues)} issue(s)")

        for uri, entry in self.document_cache.items():
            file = self._relative_path(uri)
            diagnostics = (
                issues_to_diagnostics(self.issues, file, entry["content"]) if file else []
            )
            self._publish_diagnostics(uri, diagnostics)

    def _parse_declarations(
        self, files: list[str], documents: dict[str, str]
    ) -> list[DeclaredVariable]:
        """Parse the declaration files, preferring open buffers; later files win."""
        merged: dict[str, DeclaredVariable] = {}
        for file in files:
            key = PurePath(file).as_posix()
            if key in documents:
                result = parse_content(documents[key], key)
            else:
                result = parse_file(file, self.config.root)
            for variable in result.variables:
                merged.pop(variable.name, None)
                merged[variable.name] = variable
        return list(merged.values())

    def _parse_template(
        self, template_file: str, documents: dict[str, str]
    ) -> list[DeclaredVariable] | None:
        key = PurePath(template_file).as_posix()
        if key in documents:
            return parse_content(documents[key], key).variables
        if not (Path(self.config.root) / template_file).is_file():
            return None
        return parse_file(template_file, self.config.root).variables

    def _collect_usages(self, documents: dict[str, str]) -> list[Usage]:
        """Usages on disk, with open source documents re-scanned from their buffers."""
        config = self.config
        if self.disk_usages is None:
            self.source_files = set(find_files(config.root, config.include, config.exclude))
            scan = scan_files(config.root, config.include, config.exclude, self.framework)
            self.disk_usages = {}
            for usage in scan.usages:
                self.disk_usages.setdefault(usage.file, []).append(usage)
            for error in scan.errors:
                logger.debug(f"{error.file}: {error.message}")

        by_file = dict(self.disk_usages)
        for file, content in documents.items():
            if file in self.source_files:
                by_file[file] = scan_file_content(content, file, config.root, self.framework)

        return [usage for file in sorted(by_file) for usage in by_file[file]]

    def _publish_diagnostics(self, uri: str, diagnostics: list[Diagnostic]):
        if hasattr(self, "publish_diagnostics"):
            self.publish_diagnostics(uri, diagnostics)
