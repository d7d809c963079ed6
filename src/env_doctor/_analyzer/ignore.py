"""Ignore-list matching for analyzer suppression."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def should_ignore_variable(
    name: str, ignore: Iterable[str], analyzer: str | None = None
) -> bool:
    """Check a variable against ignore entries.

    Entries are either a bare name glob (``LEGACY_*``) that applies to every
    analyzer, or ``analyzer:glob`` (``unused:DEBUG``) that only applies to
    the named analyzer. Matching is case-sensitive.
    """
    for entry in ignore:
        scope, sep, pattern = entry.partition(":")
        if sep:
            if analyzer is not None and scope == analyzer and fnmatchcase(name, pattern):
                return True
        elif fnmatchcase(name, entry):
            return True
    return False
