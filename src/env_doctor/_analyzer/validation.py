"""
Value validation shared by the type mismatch analyzer and the matrix comparator.

A rule is checked in a fixed order (type, then pattern, then enum) and the
first failure is reported.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Literal, NamedTuple
from urllib.parse import urlsplit

from env_doctor.config import compile_pattern
from env_doctor.constants import BOOLEAN_TOKENS, EMAIL_PATTERN, NUMBER_PATTERN

if TYPE_CHECKING:
    from env_doctor.config import EnvironmentOverride, VariableRule

logger = logging.getLogger(__name__)

_URL_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")

# Schemes that cannot be used without a host
_HOST_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})


class TypeExpectation(NamedTuple):
    description: str
    failure: str
    fix: str
    short_error: str


TYPE_EXPECTATIONS: dict[str, TypeExpectation] = {
    "number": TypeExpectation(
        "a number",
        "is not numeric",
        "Update the value to be a valid number",
        "Expected a number",
    ),
    "boolean": TypeExpectation(
        "a boolean",
        "is not valid",
        "Use true, false, 1, 0, yes, or no",
        "Expected a boolean value",
    ),
    "json": TypeExpectation(
        "valid JSON",
        "is not parseable",
        "Ensure the value is valid JSON",
        "Expected valid JSON",
    ),
    "url": TypeExpectation(
        "a valid URL",
        "is not a valid URL",
        "Provide a valid URL (e.g., https://example.com)",
        "Expected a valid URL",
    ),
    "email": TypeExpectation(
        "a valid email address",
        "is not a valid email address",
        "Provide a valid email address",
        "Expected a valid email address",
    ),
}


class RuleViolation(NamedTuple):
    """First failed check of a rule."""

    kind: Literal["type", "pattern", "enum"]
    expected: str | list[str]


def is_number(value: str) -> bool:
    return NUMBER_PATTERN.fullmatch(value) is not None


def is_json(value: str) -> bool:
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def is_url(value: str) -> bool:
    """Absolute URL check: a scheme, and a host for web schemes."""
    if not value or any(c.isspace() for c in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _URL_SCHEME.fullmatch(parts.scheme):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES:
        return bool(parts.hostname)
    return True


def check_type(value: str, expected_type: str | None) -> bool:
    """Whether ``value`` has the shape of ``expected_type``; unknown types always pass."""
    if expected_type == "number":
        return is_number(value)
    if expected_type == "boolean":
        return value.lower() in BOOLEAN_TOKENS
    if expected_type == "json":
        return is_json(value)
    if expected_type == "url":
        return is_url(value)
    if expected_type == "email":
        return EMAIL_PATTERN.fullmatch(value) is not None
    return True


def validate_rule_value(
    value: str, rule: VariableRule | EnvironmentOverride | None
) -> RuleViolation | None:
    """Check a value against the explicit constraints of one rule."""
    if rule is None:
        return None
    return validate_constraints(value, rule.type, rule.pattern, rule.enum)


def validate_constraints(
    value: str,
    expected_type: str | None,
    pattern: str | None,
    enum: list[str] | None,
) -> RuleViolation | None:
    if expected_type and not check_type(value, expected_type):
        return RuleViolation("type", expected_type)

    if pattern:
        try:
            regex = compile_pattern(pattern)
        except re.error as e:
            logger.warning(f"Ignoring invalid pattern {pattern!r}: {e}")
        else:
            if regex.search(value) is None:
                return RuleViolation("pattern", pattern)

    if enum and value not in enum:
        return RuleViolation("enum", list(enum))

    return None


def has_explicit_constraints(rule: VariableRule | EnvironmentOverride | None) -> bool:
    return rule is not None and bool(rule.type or rule.pattern or rule.enum)
