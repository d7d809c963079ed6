"""Source file discovery with include/exclude glob patterns."""

from __future__ import annotations

import functools
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def expand_braces(pattern: str) -> list[str]:
    """Expand the first ``{a,b}`` group of a pattern recursively.

    >>> expand_braces("src/**/*.{ts,js}")
    ['src/**/*.ts', 'src/**/*.js']
    """
    match = re.search(r"\{([^{}]*)\}", pattern)
    if match is None:
        return [pattern]

    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


@functools.lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a POSIX-style glob (``**``, ``*``, ``?``) into a compiled regex."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts) + r"\Z")


def _compile(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    compiled = []
    for pattern in patterns:
        for expanded in expand_braces(pattern.strip().removeprefix("./")):
            compiled.append(glob_to_regex(expanded.rstrip("/")))
    return compiled


def is_excluded(relative_path: str, exclude: Iterable[str]) -> bool:
    """Check a root-relative POSIX path against exclude patterns.

    A pattern without a slash or wildcard is a bare name and excludes any
    path component with that name (``node_modules`` matches at any depth).
    """
    components = relative_path.split("/")
    for pattern in exclude:
        if "/" not in pattern and not any(c in pattern for c in "*?{"):
            if pattern in components:
                return True
            continue
        for regex in _compile([pattern]):
            if regex.match(relative_path):
                return True
            # A directory pattern also covers everything below it
            if any(regex.match("/".join(components[:n])) for n in range(1, len(components))):
                return True
    return False


def find_files(
    root: str | Path, include: Iterable[str], exclude: Iterable[str] = ()
) -> list[str]:
    """Find files under ``root`` matching any include pattern and no exclude pattern.

    Returns:
        Sorted, de-duplicated list of root-relative POSIX paths
    """
    root_path = Path(root)
    include_regexes = _compile(include)
    exclude = list(exclude)

    if not root_path.is_dir():
        logger.debug(f"Scan root does not exist: {root_path}")
        return []

    found: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root_path):
        relative_dir = Path(dirpath).relative_to(root_path).as_posix()
        prefix = "" if relative_dir == "." else f"{relative_dir}/"

        # Prune excluded directories so their contents are never visited
        dirnames[:] = sorted(d for d in dirnames if not is_excluded(f"{prefix}{d}", exclude))

        for filename in filenames:
            relative_path = f"{prefix}{filename}"
            if not any(regex.match(relative_path) for regex in include_regexes):
                continue
            if is_excluded(relative_path, exclude):
                continue
            found.add(relative_path)

    return sorted(found)
