"""
env-doctor project analysis.
Parses declaration files, scans source code and runs the issue analyzers
for one project root.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from ._analyzer import DEFAULT_TEMPLATE_FILE, run_analyzers
from ._scanner.code_scanner import scan_files
from ._scanner.env_parser import parse_file, parse_files
from .config import load_config
from .frameworks import detect_framework
from .models import AnalysisResult, AnalysisStats

if TYPE_CHECKING:
    import threading

    from .config import EnvDoctorConfig
    from .models import DeclaredVariable, Issue

logger = logging.getLogger(__name__)


class EnvAnalyzer:
    """Runs the full pipeline for one configuration."""

    def __init__(self, config: EnvDoctorConfig, max_workers: int | None = None):
        self.config = config
        self.root = Path(config.root)
        self.max_workers = max_workers

    def resolve_framework(self) -> str:
        if self.config.framework == "auto":
            return detect_framework(self.root)
        return self.config.framework

    def parse_template(self) -> list[DeclaredVariable] | None:
        """Parse the configured template file; None when none is configured or present."""
        template_file = self.config.template_file
        if not template_file:
            return None
        if not (self.root / template_file).is_file():
            logger.debug(f"Template file {template_file} not found, skipping sync check")
            return None
        return parse_file(template_file, self.root).variables

    def analyze(self, cancel_event: threading.Event | None = None) -> AnalysisResult:
        start = time.perf_counter()
        framework = self.resolve_framework()
        logger.debug(f"Analyzing {self.root} (framework: {framework})")

        declared = parse_files(self.config.declaration_files, self.root)
        for error in declared.errors:
            logger.debug(f"{error.file}:{error.line}: {error.message}")

        template = self.parse_template()

        scan = scan_files(
            self.root,
            self.config.include,
            self.config.exclude,
            framework,
            max_workers=self.max_workers,
            cancel_event=cancel_event,
        )

        issues = run_analyzers(
            declared.variables, scan.usages, self.config, template=template, framework=framework
        )

        duration_ms = int((time.perf_counter() - start) * 1000)
        stats = AnalysisStats(
            files_scanned=scan.files_scanned,
            declaration_files_parsed=len(self.config.declaration_files),
            duration_ms=duration_ms,
            error_count=count_severity(issues, "error"),
            warning_count=count_severity(issues, "warning"),
            info_count=count_severity(issues, "info"),
        )
        logger.info(
            f"Found {stats.error_count} error(s), {stats.warning_count} warning(s) "
            f"in {stats.files_scanned} file(s) ({duration_ms}ms)"
        )

        return AnalysisResult(
            issues=issues,
            declared=declared.variables,
            usages=scan.usages,
            framework=framework,
            stats=stats,
            template=template,
            parse_errors=declared.errors,
            scan_errors=scan.errors,
        )

    @property
    def template_file(self) -> str:
        return self.config.template_file or DEFAULT_TEMPLATE_FILE


def count_severity(issues: list[Issue], severity: str) -> int:
    return sum(1 for issue in issues if issue.severity == severity)


def quick_analyze(root: str | Path = ".") -> AnalysisResult:
    """Load the project's configuration and analyze it."""
    config, _ = load_config(root=root)
    return EnvAnalyzer(config).analyze()
