"""Declaration file parsing and source code scanning."""

from __future__ import annotations

from .code_scanner import get_unique_variable_names, scan_file_content, scan_files
from .env_parser import (
    get_secret_patterns,
    infer_value_type,
    is_secret_variable,
    parse_content,
    parse_file,
    parse_files,
)
from .files import find_files

__all__ = [
    "find_files",
    "get_secret_patterns",
    "get_unique_variable_names",
    "infer_value_type",
    "is_secret_variable",
    "parse_content",
    "parse_file",
    "parse_files",
    "scan_file_content",
    "scan_files",
]
