"""Credentials stored with real values in declaration files."""

from __future__ import annotations

from typing import TYPE_CHECKING

from env_doctor.constants import (
    PROVIDER_NAME_PATTERNS,
    PROVIDER_VALUE_PATTERNS,
    SECRET_PLACEHOLDER_PATTERNS,
)
from env_doctor.models import Issue, SourceLocation

from .ignore import should_ignore_variable
from .unused import is_placeholder_value

if TYPE_CHECKING:
    from collections.abc import Iterable

    from env_doctor.config import EnvDoctorConfig
    from env_doctor.constants import SecretNamePattern, SecretValuePattern
    from env_doctor.models import DeclaredVariable, Usage


def analyze_secrets(
    declared: Iterable[DeclaredVariable], used: Iterable[Usage], config: EnvDoctorConfig
) -> list[Issue]:
    """Report every declared variable that looks like a secret and holds a real value."""
    custom_patterns = config.compiled_secret_patterns()
    issues: list[Issue] = []

    for variable in declared:
        name, value = variable.name, variable.value
        if not value:
            continue
        if should_ignore_variable(name, config.ignore, "secret"):
            continue

        name_match = find_secret_name_pattern(name)
        value_match = find_secret_value_pattern(value)
        rule = config.get_rule(name)
        custom_match = any(p.search(name) or p.search(value) for p in custom_patterns)

        if not (name_match or value_match or custom_match or (rule is not None and rule.secret)):
            continue
        if is_placeholder_value(value, SECRET_PLACEHOLDER_PATTERNS):
            continue

        provider = (name_match.provider if name_match else None) or (
            value_match.provider if value_match else None
        )
        secret_type = value_match.type if value_match else None

        message = f'Variable "{name}" appears to be a secret'
        if provider:
            message += f" ({provider})"
        if secret_type:
            message += f" - detected as {secret_type}"

        issues.append(
            Issue(
                type="secret-exposed",
                severity="error",
                variable=name,
                message=message
                + ". Consider using a secure vault or removing from version control.",
                location=SourceLocation(variable.file, variable.line),
                fix="Use environment-specific configuration or a secrets manager",
                context={
                    "provider": provider,
                    "secret_type": secret_type,
                    "value_preview": redact_value(value),
                },
            )
        )

    return issues


def find_secret_name_pattern(name: str) -> SecretNamePattern | None:
    for entry in PROVIDER_NAME_PATTERNS:
        if entry.pattern.search(name):
            return entry
    return None


def find_secret_value_pattern(value: str) -> SecretValuePattern | None:
    for entry in PROVIDER_VALUE_PATTERNS:
        if entry.pattern.search(value):
            return entry
    return None


def redact_value(value: str) -> str:
    """Keep the first and last four characters of a secret."""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def get_security_recommendations(issues: Iterable[Issue]) -> list[str]:
    """Follow-up advice derived from secret exposure issues."""
    secret_issues = [issue for issue in issues if issue.type == "secret-exposed"]
    if not secret_issues:
        return []

    recommendations = [
        "Add .env files to .gitignore to prevent committing secrets",
        "Consider using a secrets manager like AWS Secrets Manager, HashiCorp Vault, or Doppler",
        "Use .env.example with placeholder values for documentation",
        "Enable git pre-commit hooks to scan for secrets before committing",
    ]

    providers = {issue.context.get("provider") for issue in secret_issues}
    if "AWS" in providers:
        recommendations.append(
            "Consider using AWS IAM roles instead of access keys where possible"
        )
    if "Stripe" in providers:
        recommendations.append(
            "Use Stripe restricted API keys with minimal permissions in production"
        )

    return recommendations
