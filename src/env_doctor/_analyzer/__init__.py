"""
Issue analyzers.

Each analyzer is a pure function of the declared variables, the usages and
the configuration; none of them reads another analyzer's output.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .ignore import should_ignore_variable
from .missing import analyze_missing, get_missing_summary
from .secrets import analyze_secrets, get_security_recommendations, redact_value
from .sync_check import analyze_sync_drift, compare_template_with_env, generate_template
from .type_mismatch import analyze_type_mismatch, mask_value
from .unused import analyze_unused, get_unused_summary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from env_doctor.config import EnvDoctorConfig
    from env_doctor.models import DeclaredVariable, Issue, Usage

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_FILE = ".env.example"


def run_analyzers(
    declared: Sequence[DeclaredVariable],
    used: Sequence[Usage],
    config: EnvDoctorConfig,
    template: Sequence[DeclaredVariable] | None = None,
    framework: str | None = None,
) -> list[Issue]:
    """Run every analyzer and concatenate their issues.

    Sync drift only runs when a parsed ``template`` is given.
    """
    issues = [
        *analyze_missing(declared, used, config),
        *analyze_unused(declared, used, config, framework=framework),
        *analyze_type_mismatch(declared, used, config),
        *analyze_secrets(declared, used, config),
    ]

    if template is not None:
        template_file = config.template_file or DEFAULT_TEMPLATE_FILE
        issues.extend(analyze_sync_drift(declared, template, template_file, config.ignore).issues)

    logger.debug(f"Analyzers produced {len(issues)} issue(s)")
    return issues


__all__ = [
    "analyze_missing",
    "analyze_secrets",
    "analyze_sync_drift",
    "analyze_type_mismatch",
    "analyze_unused",
    "compare_template_with_env",
    "generate_template",
    "get_missing_summary",
    "get_security_recommendations",
    "get_unused_summary",
    "mask_value",
    "redact_value",
    "run_analyzers",
    "should_ignore_variable",
]
