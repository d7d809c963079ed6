"""
Declaration file parsing.
Turns ``NAME=value`` text files into DeclaredVariable records.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from env_doctor.constants import (
    CREDENTIAL_VALUE_PATTERNS,
    NUMBER_PATTERN,
    SECRET_NAME_PATTERNS,
    VALID_NAME_PATTERN,
)
from env_doctor.models import DeclaredVariable, ParseError, ParseResult

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable

    from env_doctor.models import InferredType

logger = logging.getLogger(__name__)

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


def parse_file(path: str | Path, root: str | Path = ".") -> ParseResult:
    """Parse a declaration file relative to ``root``.

    Never raises: a missing or unreadable file yields an empty variable list
    and a single error entry.
    """
    file_label = str(path)
    absolute_path = Path(root) / path

    if not absolute_path.is_file():
        logger.debug(f"Declaration file not found: {absolute_path}")
        return ParseResult(errors=[ParseError(0, f"File not found: {file_label}", file_label)])

    try:
        content = absolute_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return ParseResult(errors=[ParseError(0, f"Failed to read file: {e}", file_label)])

    return parse_content(content, file_label)


def parse_content(content: str, file: str) -> ParseResult:
    """Parse declaration text that has already been read."""
    result = ParseResult()

    for index, raw_line in enumerate(content.split("\n")):
        line_number = index + 1
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        name, value, error = _parse_line(line)
        if error is not None:
            result.errors.append(ParseError(line_number, error, file))
            continue

        result.variables.append(
            DeclaredVariable(
                name=name,
                value=value,
                line=line_number,
                file=file,
                is_secret=is_secret_variable(name, value),
                inferred_type=infer_value_type(value),
                raw=raw_line,
            )
        )

    return result


def _parse_line(line: str) -> tuple[str, str, str | None]:
    """Split one non-blank, non-comment line into name and value."""
    if line.startswith("export "):
        line = line[len("export ") :]

    name, sep, value = line.partition("=")
    if not sep:
        return "", "", "Invalid format: missing '=' sign"

    name = name.strip()
    if not VALID_NAME_PATTERN.match(name):
        return "", "", f'Invalid variable name: "{name}"'

    return name, _parse_value(value), None


def _parse_value(value: str) -> str:
    value = value.strip()

    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        quote = value[0]
        value = value[1:-1]
        if quote == '"':
            value = _unescape(value)
    else:
        comment_index = value.find(" #")
        if comment_index != -1:
            value = value[:comment_index].strip()

    return value


def _unescape(value: str) -> str:
    """Resolve ``\\n \\r \\t \\" \\\\`` inside a double-quoted value."""
    chars: list[str] = []
    i = 0
    while i < len(value):
        char = value[i]
        if char == "\\" and i + 1 < len(value) and value[i + 1] in _ESCAPES:
            chars.append(_ESCAPES[value[i + 1]])
            i += 2
            continue
        chars.append(char)
        i += 1
    return "".join(chars)


def parse_files(paths: Iterable[str | Path], root: str | Path = ".") -> ParseResult:
    """Parse several declaration files; later files override earlier ones."""
    merged: dict[str, DeclaredVariable] = {}
    errors: list[ParseError] = []

    for path in paths:
        result = parse_file(path, root)
        for variable in result.variables:
            # Re-insert so the surviving record takes the later file's position
            merged.pop(variable.name, None)
            merged[variable.name] = variable
        errors.extend(result.errors)

    return ParseResult(variables=list(merged.values()), errors=errors)


def is_secret_variable(
    name: str, value: str, extra_patterns: Iterable[re.Pattern[str]] = ()
) -> bool:
    """Check whether a variable likely holds credential material."""
    if any(pattern.search(name) for pattern in get_secret_patterns(extra_patterns)):
        return True

    if value:
        return any(pattern.search(value) for pattern in CREDENTIAL_VALUE_PATTERNS)

    return False


def get_secret_patterns(
    extra_patterns: Iterable[re.Pattern[str]] | None = None,
) -> tuple[re.Pattern[str], ...]:
    """Built-in secret name patterns merged with caller-supplied ones."""
    if extra_patterns:
        return (*SECRET_NAME_PATTERNS, *extra_patterns)
    return SECRET_NAME_PATTERNS


def infer_value_type(value: str) -> InferredType | None:
    """Infer the shape of a declared value from the string alone."""
    if not value:
        return None

    if value in ("true", "false"):
        return "boolean"

    if NUMBER_PATTERN.match(value):
        return "number"

    if (value.startswith("{") and value.endswith("}")) or (
        value.startswith("[") and value.endswith("]")
    ):
        try:
            json.loads(value)
        except ValueError:
            pass
        else:
            return "json"

    if "," in value and " " not in value:
        return "array"

    return "string"
