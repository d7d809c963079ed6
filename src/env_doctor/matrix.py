"""
Cross-environment comparison.

Builds a variable x environment grid from the declaration files of several
named environments, validates each cell against the configured rules and
reports row-level issues (missing, invalid, inconsistent, differing values).
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ._analyzer.validation import TYPE_EXPECTATIONS, validate_constraints
from ._scanner.env_parser import parse_files
from .constants import DEFAULT_ENVIRONMENTS, EXPECTED_TO_DIFFER
from .models import (
    EnvironmentSummary,
    EnvironmentVariableInfo,
    MatrixIssue,
    MatrixResult,
    MatrixRow,
    MatrixSummary,
    ParsedEnvironment,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .config import EnvDoctorConfig, EnvironmentOverride, VariableRule
    from .models import DeclaredVariable, Severity

logger = logging.getLogger(__name__)

_SEVERITY_ORDER: tuple[Severity, ...] = ("error", "warning", "info")

_ENV_FILE_PATTERN = re.compile(r"^\.env\.(\w+)(\.local)?$")

# Suffixes that are not environment names
_NON_ENVIRONMENT_SUFFIXES = frozenset({"local", "example", "sample", "template"})


def compare_environments(
    environments: Sequence[ParsedEnvironment],
    config: EnvDoctorConfig,
    exclude: Iterable[str] | None = None,
) -> list[MatrixRow]:
    """Build one row per variable name, sorted by name.

    Names come from every environment's declarations plus every configured
    rule, minus names matching an ``exclude`` glob.
    """
    exclude = list(exclude or ())
    names: set[str] = set()
    for environment in environments:
        names.update(variable.name for variable in environment.variables)
    names.update(config.variables)

    rows = []
    for name in sorted(names):
        if any(fnmatchcase(name, pattern) for pattern in exclude):
            continue
        rows.append(_build_row(name, environments, config))
    return rows


def _build_row(
    name: str, environments: Sequence[ParsedEnvironment], config: EnvDoctorConfig
) -> MatrixRow:
    rule = config.get_rule(name)
    row = MatrixRow(name=name)

    for environment in environments:
        override = rule.override_for(environment.name) if rule is not None else None
        row.environments[environment.name] = _environment_info(
            environment.get(name), rule, override, environment.name
        )

    row.issues = _detect_row_issues(row, [e.name for e in environments], rule, config)
    row.status = worst_severity(row.issues)
    return row


def worst_severity(issues: Iterable[MatrixIssue]) -> str:
    """``ok`` for no issues, else the most severe issue's severity."""
    severities = {issue.severity for issue in issues}
    for severity in _SEVERITY_ORDER:
        if severity in severities:
            return severity
    return "ok"


def _is_required(rule: VariableRule | None, override: EnvironmentOverride | None) -> bool:
    if override is not None and override.required is not None:
        return override.required
    return rule is not None and rule.required


def _environment_info(
    variable: DeclaredVariable | None,
    rule: VariableRule | None,
    override: EnvironmentOverride | None,
    environment: str,
) -> EnvironmentVariableInfo:
    if variable is None:
        required = _is_required(rule, override)
        return EnvironmentVariableInfo(
            status="missing",
            valid=not required,
            error="Required variable is missing" if required else None,
        )

    info = EnvironmentVariableInfo(
        status="set" if variable.value else "empty",
        valid=True,
        value=variable.value,
        file=variable.file,
        line=variable.line,
        is_secret=variable.is_secret or (rule is not None and rule.secret),
    )

    error = validate_environment_value(variable.value, rule, override, environment)
    if error is not None:
        info.status = "invalid"
        info.valid = False
        info.error = error

    return info


def validate_environment_value(
    value: str,
    rule: VariableRule | None,
    override: EnvironmentOverride | None,
    environment: str,
) -> str | None:
    """Check one value against its environment override, then the base rule.

    Returns:
        An error message, or None when the value is valid
    """
    if rule is None and override is None:
        return None

    if override is not None and override.must_be is not None and value != override.must_be:
        return override.message or f'Value must be "{override.must_be}" in {environment}'

    def pick(field: str):
        # An override field replaces the base rule's field when set
        if override is not None and getattr(override, field):
            return getattr(override, field)
        return getattr(rule, field) if rule is not None else None

    violation = validate_constraints(value, pick("type"), pick("pattern"), pick("enum"))
    if violation is None:
        return None
    if violation.kind == "type":
        return TYPE_EXPECTATIONS[violation.expected].short_error
    if violation.kind == "pattern":
        return "Value does not match required pattern"
    return f"Value must be one of: {', '.join(violation.expected)}"


def _detect_row_issues(
    row: MatrixRow,
    environment_names: list[str],
    rule: VariableRule | None,
    config: EnvDoctorConfig,
) -> list[MatrixIssue]:
    cells = row.environments
    issues: list[MatrixIssue] = []

    missing_required = [
        env for env in environment_names if cells[env].status == "missing" and not cells[env].valid
    ]
    if missing_required:
        issues.append(
            MatrixIssue(
                type="missing",
                severity="error",
                variable=row.name,
                environments=missing_required,
                message=f"Required variable is missing in {', '.join(missing_required)}",
                fix=f"Add {row.name}= to the .env files for these environments",
            )
        )

    for env in environment_names:
        if cells[env].status == "invalid":
            issues.append(
                MatrixIssue(
                    type="invalid",
                    severity="error",
                    variable=row.name,
                    environments=[env],
                    message=cells[env].error or f"Invalid value in {env}",
                )
            )

    set_envs = [env for env in environment_names if cells[env].status == "set"]
    missing_optional = [
        env for env in environment_names if cells[env].status == "missing" and cells[env].valid
    ]
    consistency = config.matrix.require_consistency if config.matrix else "warn"
    if set_envs and missing_optional and consistency != "off":
        issues.append(
            MatrixIssue(
                type="inconsistent",
                severity="error" if consistency == "error" else "warning",
                variable=row.name,
                environments=missing_optional,
                message=(
                    f"Variable is missing in {', '.join(missing_optional)} "
                    f"but defined in {', '.join(set_envs)}"
                ),
                fix=f"Add {row.name}= to the missing environments or remove from all",
            )
        )

    is_secret = (rule is not None and rule.secret) or any(
        cells[env].is_secret for env in environment_names
    )
    distinct_values = {
        cells[env].value for env in environment_names if cells[env].status == "set"
    }
    if len(distinct_values) > 1 and not is_secret and row.name not in EXPECTED_TO_DIFFER:
        issues.append(
            MatrixIssue(
                type="value_mismatch",
                severity="info",
                variable=row.name,
                environments=list(environment_names),
                message="Value differs across environments (may be intentional)",
            )
        )

    return issues


def parse_environment(
    name: str, files: Sequence[str], root: str | Path, description: str | None = None
) -> ParsedEnvironment:
    """Parse the layered declaration files of one environment."""
    result = parse_files(files, root)
    return ParsedEnvironment(
        name=name,
        files=list(files),
        variables=result.variables,
        errors=result.errors,
        description=description,
    )


def analyze_matrix(
    config: EnvDoctorConfig,
    root: str | Path | None = None,
    environments: Iterable[str] | None = None,
) -> MatrixResult:
    """Parse every configured environment and compare them.

    Uses the built-in development/staging/production/test definitions when
    the configuration declares no environments. ``environments`` restricts
    the comparison to the named ones.

    Raises:
        ValueError: if no environment is left to analyze
    """
    root = Path(root if root is not None else config.root)

    if config.environments:
        definitions = {
            name: (list(env.files) or [f".env.{name}"], env.description)
            for name, env in config.environments.items()
        }
    else:
        definitions = {
            name: (list(env["files"]), env["description"])
            for name, env in DEFAULT_ENVIRONMENTS.items()
        }

    names = list(definitions)
    if environments:
        wanted = set(environments)
        names = [name for name in names if name in wanted]

    if not names:
        raise ValueError("No environments configured for matrix analysis")

    logger.debug(f"Analyzing environments: {', '.join(names)}")

    parsed = []
    for name in names:
        files, description = definitions[name]
        logger.debug(f"Parsing {name}: {', '.join(files)}")
        parsed.append(parse_environment(name, files, root, description))

    exclude = config.matrix.exclude_from_matrix if config.matrix else []
    rows = compare_environments(parsed, config, exclude)

    return MatrixResult(
        environments=names,
        environment_info={
            env.name: {
                "description": env.description,
                "files": env.files,
                "variable_count": len(env.variables),
            }
            for env in parsed
        },
        rows=rows,
        issues=[issue for row in rows for issue in row.issues],
        summary=_summarize(rows, names),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def _summarize(rows: Sequence[MatrixRow], names: Sequence[str]) -> MatrixSummary:
    per_environment = {name: EnvironmentSummary() for name in names}
    status_counts = {"ok": 0, "error": 0, "warning": 0, "info": 0}

    for row in rows:
        for name in names:
            info = row.environments[name]
            if info.status in ("set", "empty"):
                per_environment[name].total += 1
            elif info.status == "missing" and not info.valid:
                per_environment[name].missing += 1
            elif info.status == "invalid":
                per_environment[name].invalid += 1
        status_counts[row.status] += 1

    return MatrixSummary(
        total_variables=len(rows),
        consistent_variables=status_counts["ok"],
        error_count=status_counts["error"],
        warning_count=status_counts["warning"],
        info_count=status_counts["info"],
        per_environment=per_environment,
    )


def detect_environments(root: str | Path) -> list[str]:
    """Environment names implied by ``.env.<name>`` files in ``root``."""
    root = Path(root)
    if not root.is_dir():
        return []

    filenames = {path.name for path in root.iterdir() if path.name.startswith(".env")}
    found = set()
    for filename in filenames:
        match = _ENV_FILE_PATTERN.match(filename)
        if match and match.group(1) not in _NON_ENVIRONMENT_SUFFIXES:
            found.add(match.group(1))

    if ".env" in filenames or ".env.local" in filenames:
        found.add("development")

    return sorted(found)


def matrix_to_dict(result: MatrixResult) -> dict[str, Any]:
    """JSON-ready form of a matrix result; secret values are omitted."""
    return {
        "timestamp": result.timestamp,
        "environments": result.environments,
        "environment_info": result.environment_info,
        "matrix": {
            row.name: {
                env: _cell_to_dict(info) for env, info in row.environments.items()
            }
            for row in result.rows
        },
        "rows": [
            {
                "name": row.name,
                "status": row.status,
                "issues": [_issue_to_dict(issue) for issue in row.issues],
            }
            for row in result.rows
        ],
        "summary": {
            "total_variables": result.summary.total_variables,
            "consistent_variables": result.summary.consistent_variables,
            "error_count": result.summary.error_count,
            "warning_count": result.summary.warning_count,
            "info_count": result.summary.info_count,
            "per_environment": {
                name: vars(summary) for name, summary in result.summary.per_environment.items()
            },
        },
    }


def _cell_to_dict(info: EnvironmentVariableInfo) -> dict[str, Any]:
    data: dict[str, Any] = {"status": info.status, "valid": info.valid}
    if info.value is not None and not info.is_secret:
        data["value"] = info.value
    for key in ("file", "line", "error"):
        value = getattr(info, key)
        if value is not None:
            data[key] = value
    if info.is_secret:
        data["is_secret"] = True
    return data


def _issue_to_dict(issue: MatrixIssue) -> dict[str, Any]:
    data = {
        "type": issue.type,
        "severity": issue.severity,
        "variable": issue.variable,
        "environments": issue.environments,
        "message": issue.message,
    }
    if issue.fix:
        data["fix"] = issue.fix
    return data
