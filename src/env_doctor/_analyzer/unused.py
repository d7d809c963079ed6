"""Variables declared but never read by code."""

from __future__ import annotations

from typing import TYPE_CHECKING

from env_doctor.constants import (
    DYNAMIC_VARIABLE,
    FRAMEWORK_VARIABLES,
    PLACEHOLDER_PATTERNS,
    RUNTIME_VARIABLES,
)
from env_doctor.models import Issue, SourceLocation

from .ignore import should_ignore_variable

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable

    from env_doctor.config import EnvDoctorConfig
    from env_doctor.models import DeclaredVariable, Usage


def analyze_unused(
    declared: Iterable[DeclaredVariable],
    used: Iterable[Usage],
    config: EnvDoctorConfig,
    framework: str | None = None,
) -> list[Issue]:
    """Warn about declared variables that no usage references.

    Runtime and framework variables, ignored names and placeholder values
    are skipped. ``framework`` defaults to the configured one.
    """
    used_names = {usage.name for usage in used if usage.name != DYNAMIC_VARIABLE}
    framework_variables = FRAMEWORK_VARIABLES.get(framework or config.framework, frozenset())
    issues: list[Issue] = []

    for variable in declared:
        name = variable.name
        if name in used_names or name in RUNTIME_VARIABLES or name in framework_variables:
            continue
        if should_ignore_variable(name, config.ignore, "unused"):
            continue
        if is_placeholder_value(variable.value):
            continue

        issues.append(
            Issue(
                type="unused",
                severity="warning",
                variable=name,
                message=f'Variable "{name}" is defined in {variable.file} but never used in code',
                location=SourceLocation(variable.file, variable.line),
                context={"value": "[set]" if variable.value else "[empty]"},
            )
        )

    return issues


def is_placeholder_value(
    value: str, patterns: Iterable[re.Pattern[str]] = PLACEHOLDER_PATTERNS
) -> bool:
    """Empty values count as placeholders."""
    if not value:
        return True
    return any(pattern.search(value) for pattern in patterns)


def get_unused_summary(issues: Iterable[Issue]) -> dict:
    """Count unused-variable issues and group their names by declaring file."""
    by_file: dict[str, list[str]] = {}
    count = 0
    for issue in issues:
        if issue.type != "unused":
            continue
        count += 1
        file = issue.location.file if issue.location else "unknown"
        by_file.setdefault(file, []).append(issue.variable)
    return {"count": count, "by_file": by_file}
