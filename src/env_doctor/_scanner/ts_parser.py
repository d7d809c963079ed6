"""Tree-sitter JavaScript/TypeScript parsers with parse tree caching.

Provides one parser per grammar and per thread, and a per-thread LRU cache of
parse trees keyed by source hash. Parsers are never shared between threads, so
files can be parsed from a thread pool without locking.
"""

from __future__ import annotations

import hashlib
import os
import threading
from collections import OrderedDict
from typing import TYPE_CHECKING

import tree_sitter_typescript
from tree_sitter import Language, Parser

from env_doctor.constants import TYPESCRIPT_EXTENSIONS

if TYPE_CHECKING:
    from tree_sitter import Tree

TYPESCRIPT = "typescript"
TSX = "tsx"

_LANGUAGES: dict[str, Language] = {
    TYPESCRIPT: Language(tree_sitter_typescript.language_typescript()),
    TSX: Language(tree_sitter_typescript.language_tsx()),
}

# Cache configuration
_CACHE_ENABLED = os.environ.get("ENV_DOCTOR_DISABLE_CACHE") != "1"
_MAX_CACHE_SIZE = int(os.environ.get("ENV_DOCTOR_CACHE_SIZE", "100"))

_local = threading.local()


def grammar_for_path(file_path: str) -> str:
    """Pick the grammar for a file; TSX is a superset that also covers JS and JSX."""
    _, ext = os.path.splitext(file_path)
    return TYPESCRIPT if ext.lower() in TYPESCRIPT_EXTENSIONS else TSX


def _get_parser(grammar: str) -> Parser:
    parsers: dict[str, Parser] | None = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}
    if grammar not in parsers:
        parsers[grammar] = Parser(_LANGUAGES[grammar])
    return parsers[grammar]


def _get_cache() -> OrderedDict[str, tuple[Tree, bytes]]:
    cache = getattr(_local, "cache", None)
    if cache is None:
        cache = _local.cache = OrderedDict()
    return cache


def _compute_hash(grammar: str, source_bytes: bytes) -> str:
    return hashlib.sha256(grammar.encode() + b"\0" + source_bytes).hexdigest()


def _cache_get(cache_key: str) -> tuple[Tree, bytes] | None:
    if not _CACHE_ENABLED:
        return None

    cache = _get_cache()
    if cache_key in cache:
        # Move to end (most recently used)
        cache.move_to_end(cache_key)
        return cache[cache_key]

    return None


def _cache_put(cache_key: str, tree: Tree, source_bytes: bytes) -> None:
    if not _CACHE_ENABLED:
        return

    cache = _get_cache()
    cache[cache_key] = (tree, source_bytes)

    while len(cache) > _MAX_CACHE_SIZE:
        cache.popitem(last=False)


def clear_cache() -> None:
    """Clear the parse tree cache of the calling thread."""
    _get_cache().clear()


def get_cache_stats() -> dict[str, int]:
    """Get cache statistics for the calling thread."""
    return {
        "size": len(_get_cache()),
        "capacity": _MAX_CACHE_SIZE,
        "enabled": _CACHE_ENABLED,
    }


def parse(source_code: str | bytes, grammar: str = TSX) -> Tree:
    """Parse JavaScript or TypeScript source with caching.

    Args:
        source_code: Source text to parse
        grammar: ``"tsx"`` (JS, JSX, TSX) or ``"typescript"`` (plain TS)

    Returns:
        Tree-sitter Tree object. Syntax errors do not raise; they show up as
        ``ERROR``/missing nodes and ``tree.root_node.has_error``.
    """
    source_bytes = source_code.encode("utf-8") if isinstance(source_code, str) else source_code

    cache_key = _compute_hash(grammar, source_bytes)
    cached = _cache_get(cache_key)
    if cached is not None:
        cached_tree, cached_bytes = cached
        # Verify cached bytes match (hash collision protection)
        if cached_bytes == source_bytes:
            return cached_tree

    tree = _get_parser(grammar).parse(source_bytes)
    _cache_put(cache_key, tree, source_bytes)

    return tree
