"""Variables used in code but never declared."""

from __future__ import annotations

from typing import TYPE_CHECKING

from env_doctor.constants import DYNAMIC_VARIABLE
from env_doctor.models import Issue, SourceLocation

from .ignore import should_ignore_variable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from env_doctor.config import EnvDoctorConfig
    from env_doctor.models import DeclaredVariable, Usage


def analyze_missing(
    declared: Iterable[DeclaredVariable], used: Iterable[Usage], config: EnvDoctorConfig
) -> list[Issue]:
    """Report each undeclared variable once, at its first usage.

    Variables with a configured ``default`` are not reported. Variables a
    rule marks ``required`` are errors, even when no code reads them.
    """
    declared_names = {variable.name for variable in declared}
    reported: set[str] = set()
    issues: list[Issue] = []

    for usage in used:
        name = usage.name
        if name == DYNAMIC_VARIABLE or name in reported or name in declared_names:
            continue
        if should_ignore_variable(name, config.ignore, "missing"):
            continue

        rule = config.get_rule(name)
        if rule is not None and rule.default is not None:
            continue

        reported.add(name)
        issues.append(
            Issue(
                type="missing",
                severity="error" if rule is not None and rule.required else "warning",
                variable=name,
                message=f'Variable "{name}" is used in code but not defined in any .env file',
                location=SourceLocation(usage.file, usage.line, usage.column),
                fix=f"Add {name}= to your .env file",
            )
        )

    for name, rule in config.variables.items():
        if not rule.required or name in declared_names or name in reported:
            continue
        if should_ignore_variable(name, config.ignore, "missing"):
            continue

        reported.add(name)
        issues.append(
            Issue(
                type="missing",
                severity="error",
                variable=name,
                message=f'Required variable "{name}" is not defined in any .env file',
                fix=f"Add {name}= to your .env file",
            )
        )

    return issues


def get_missing_summary(issues: Iterable[Issue]) -> dict[str, list[str]]:
    """Split missing-variable issues into required and optional names."""
    summary: dict[str, list[str]] = {"required": [], "optional": []}
    for issue in issues:
        if issue.type != "missing":
            continue
        summary["required" if issue.severity == "error" else "optional"].append(issue.variable)
    return summary
