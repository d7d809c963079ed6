"""
Declared values that do not fit how they are configured or used.

Explicit rules (``type``, ``pattern``, ``enum``) produce errors. Without an
explicit rule the expected type is inferred from the usages, and a mismatch
is only a warning (``info`` for arrays).
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from env_doctor._scanner.env_parser import infer_value_type
from env_doctor.constants import DYNAMIC_VARIABLE, INFERRED_BOOLEAN_TOKENS
from env_doctor.models import Issue, SourceLocation

from .ignore import should_ignore_variable
from .validation import TYPE_EXPECTATIONS, has_explicit_constraints, is_json, validate_rule_value

if TYPE_CHECKING:
    from collections.abc import Iterable

    from env_doctor.config import EnvDoctorConfig, VariableRule
    from env_doctor.models import DeclaredVariable, InferredType, Usage


def analyze_type_mismatch(
    declared: Iterable[DeclaredVariable], used: Iterable[Usage], config: EnvDoctorConfig
) -> list[Issue]:
    """Check each declared-and-used variable's value."""
    defined = {variable.name: variable for variable in declared}

    usages_by_name: dict[str, list[Usage]] = {}
    for usage in used:
        if usage.name != DYNAMIC_VARIABLE:
            usages_by_name.setdefault(usage.name, []).append(usage)

    issues: list[Issue] = []
    for name, usages in usages_by_name.items():
        variable = defined.get(name)
        if variable is None:
            continue
        if should_ignore_variable(name, config.ignore, "type-mismatch"):
            continue

        rule = config.get_rule(name)
        if has_explicit_constraints(rule):
            issue = _check_explicit_rule(variable, rule)
        else:
            issue = _check_inferred_type(variable, usages)

        if issue is not None:
            issues.append(issue)

    return issues


def _check_explicit_rule(variable: DeclaredVariable, rule: VariableRule) -> Issue | None:
    violation = validate_rule_value(variable.value, rule)
    if violation is None:
        return None

    name = variable.name
    location = SourceLocation(variable.file, variable.line)
    shown = mask_value(variable.value, variable.is_secret or rule.secret)

    if violation.kind == "type":
        expectation = TYPE_EXPECTATIONS[violation.expected]
        if violation.expected in ("number", "boolean"):
            detail = f' but value "{shown}" {expectation.failure}'
        elif violation.expected == "json":
            detail = f" but value {expectation.failure}"
        else:
            detail = ""
        return Issue(
            type="type-mismatch",
            severity="error",
            variable=name,
            message=f'Variable "{name}" should be {expectation.description}{detail}',
            location=location,
            fix=expectation.fix,
            context={"expected": violation.expected, "value": shown},
        )

    if violation.kind == "pattern":
        return Issue(
            type="invalid-value",
            severity="error",
            variable=name,
            message=f'Value of "{name}" doesn\'t match required pattern',
            location=location,
            context={"pattern": violation.expected, "value": shown},
        )

    return Issue(
        type="invalid-value",
        severity="error",
        variable=name,
        message=f'Value of "{name}" must be one of: {", ".join(violation.expected)}',
        location=location,
        context={"expected": violation.expected, "actual": shown},
    )


def _check_inferred_type(variable: DeclaredVariable, usages: list[Usage]) -> Issue | None:
    value = variable.value
    if not value:
        return None

    primary = most_common_type(u.inferred_type for u in usages)
    if primary is None:
        return None

    name = variable.name
    first = usages[0]
    used_at = f"{first.file}:{first.line}"
    shown = mask_value(value, variable.is_secret)

    if primary == "number" and infer_value_type(value) != "number":
        severity, message = (
            "warning",
            f'Variable "{name}" is used as a number at {used_at} '
            f'but value "{shown}" is not numeric',
        )
    elif primary == "boolean" and value.lower() not in INFERRED_BOOLEAN_TOKENS:
        severity, message = (
            "warning",
            f'Variable "{name}" is used as a boolean at {used_at} but value may not be valid',
        )
    elif primary == "json" and not is_json(value):
        severity, message = (
            "warning",
            f'Variable "{name}" is parsed as JSON at {used_at} but value is not valid JSON',
        )
    elif primary == "array" and "," not in value:
        severity, message = (
            "info",
            f'Variable "{name}" is used as an array at {used_at} '
            "but value doesn't contain comma separators",
        )
    else:
        return None

    return Issue(
        type="type-mismatch",
        severity=severity,
        variable=name,
        message=message,
        location=SourceLocation(variable.file, variable.line),
        context={"used_at": used_at, "inferred_type": primary},
    )


def most_common_type(types: Iterable[InferredType | None]) -> InferredType | None:
    """Most frequent non-empty inferred type; ties go to the type seen first."""
    counts = Counter(t for t in types if t)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def mask_value(value: str, is_secret: bool) -> str:
    """Hide all but two characters at each end of a secret value."""
    if not is_secret:
        return value
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}****{value[-2:]}"
