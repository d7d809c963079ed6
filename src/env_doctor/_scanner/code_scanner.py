"""
Source code scanning for environment variable usages.

Parses JavaScript/TypeScript with tree-sitter and recognizes reads through
the server chain (``process.env``) and the bundler client chain
(``import.meta.env``). Files whose syntax tree contains errors are scanned
with a line-oriented regex fallback instead, which only recovers direct and
bracket reads.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Literal

from env_doctor.constants import (
    CLIENT_FILE_PATTERNS,
    CLIENT_PREFIXES,
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    DYNAMIC_VARIABLE,
    EQUALITY_OPERATORS,
    FALLBACK_BRACKET_PATTERN,
    FALLBACK_CLIENT_PATTERN,
    FALLBACK_DIRECT_PATTERN,
    NUMERIC_COERCIONS,
)
from env_doctor.models import ScanError, ScanResult, Usage

from . import ts_parser
from .files import find_files
from .ts_utils import (
    get_field,
    get_text,
    is_identifier,
    position,
    semantic_parent,
    string_literal_value,
    unwrap,
    walk_tree,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable

    from tree_sitter import Node

    from env_doctor.models import AccessPattern, InferredType

logger = logging.getLogger(__name__)

Chain = Literal["server", "client"]


class _FileContext:
    """Per-file facts shared by every recognizer."""

    __slots__ = ("client_prefixes", "file", "is_client_file")

    def __init__(self, file: str, framework: str):
        self.file = file
        self.is_client_file = is_client_side_file(file)
        self.client_prefixes = CLIENT_PREFIXES.get(framework, ())

    def usage(
        self,
        name: str,
        node: Node,
        access_pattern: AccessPattern,
        chain: Chain,
        inferred_type: InferredType | None = None,
    ) -> Usage:
        line, column = position(node)
        return Usage(
            name=name,
            file=self.file,
            line=line,
            column=column,
            access_pattern=access_pattern,
            inferred_type=inferred_type,
            is_client_side=self.is_client(name, chain),
        )

    def is_client(self, name: str, chain: Chain) -> bool:
        if chain == "client" or self.is_client_file:
            return True
        return name != DYNAMIC_VARIABLE and is_client_variable(name, self.client_prefixes)


def scan_files(
    root: str | Path,
    include: Iterable[str] = DEFAULT_INCLUDE,
    exclude: Iterable[str] = DEFAULT_EXCLUDE,
    framework: str = "node",
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> ScanResult:
    """Scan every matching source file under ``root``.

    Files are read and scanned on a thread pool. Results are merged in
    sorted file order, so identical inputs give identical output. Setting
    ``cancel_event`` stops files that have not started yet from being
    scanned; already collected usages are still returned.
    """
    root_path = Path(root)
    files = find_files(root_path, include, exclude)
    logger.debug(f"Found {len(files)} files to scan")

    def scan_one(relative_path: str) -> tuple[list[Usage], ScanError | None] | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        try:
            content = (root_path / relative_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Error scanning {relative_path}: {e}")
            return [], ScanError(relative_path, str(e))
        return scan_file_content(content, relative_path, root_path, framework), None

    result = ScanResult()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for outcome in executor.map(scan_one, files):
            if outcome is None:
                continue
            usages, error = outcome
            result.files_scanned += 1
            result.usages.extend(usages)
            if error is not None:
                result.errors.append(error)

    if cancel_event is not None and cancel_event.is_set():
        logger.info(f"Scan cancelled after {result.files_scanned} of {len(files)} files")

    return result


def scan_file_content(
    content: str, file_path: str | Path, root: str | Path = ".", framework: str = "node"
) -> list[Usage]:
    """Find every environment variable read in one file's source text."""
    file = _relative_posix(file_path, root)
    context = _FileContext(file, framework)

    tree = ts_parser.parse(content, ts_parser.grammar_for_path(file))
    if tree.root_node.has_error:
        logger.debug(f"Syntax tree has errors for {file}, using regex fallback")
        return scan_with_regex(content, context)

    usages: list[Usage] = []
    for node in walk_tree(tree.root_node):
        usages.extend(extract_usages(node, context))
    return usages


def _relative_posix(file_path: str | Path, root: str | Path) -> str:
    path = PurePath(file_path)
    if path.is_absolute():
        try:
            path = path.relative_to(os.path.abspath(root))
        except ValueError:
            pass
    return path.as_posix()


# Recognizers, tried in this order for every node; the first match wins.


def _recognize_direct(node: Node, context: _FileContext) -> list[Usage] | None:
    if node.type != "member_expression":
        return None
    chain = env_chain(get_field(node, "object"))
    prop = get_field(node, "property")
    if chain is None or prop is None or prop.type != "property_identifier":
        return None
    return [context.usage(get_text(prop), node, "direct", chain, infer_type_from_context(node))]


def _recognize_bracket(node: Node, context: _FileContext) -> list[Usage] | None:
    if node.type != "subscript_expression":
        return None
    chain = env_chain(get_field(node, "object"))
    name = string_literal_value(unwrap(get_field(node, "index")))
    if chain is None or name is None:
        return None
    return [context.usage(name, node, "bracket", chain, infer_type_from_context(node))]


def _recognize_dynamic(node: Node, context: _FileContext) -> list[Usage] | None:
    if node.type != "subscript_expression":
        return None
    chain = env_chain(get_field(node, "object"))
    if chain is None:
        return None
    return [context.usage(DYNAMIC_VARIABLE, node, "dynamic", chain)]


def _recognize_destructure(node: Node, context: _FileContext) -> list[Usage] | None:
    if node.type != "variable_declarator":
        return None
    pattern = get_field(node, "name")
    chain = env_chain(get_field(node, "value"))
    if chain is None or pattern is None or pattern.type != "object_pattern":
        return None

    usages = []
    for entry in pattern.named_children:
        key = _destructured_key(entry)
        if key is None:
            continue
        name = get_text(key) if key.type != "string" else string_literal_value(key)
        if name:
            usages.append(context.usage(name, entry, "destructure", chain))
    return usages


_RECOGNIZERS: tuple[Callable[[Node, _FileContext], list[Usage] | None], ...] = (
    _recognize_direct,
    _recognize_bracket,
    _recognize_dynamic,
    _recognize_destructure,
)


def extract_usages(node: Node, context: _FileContext) -> list[Usage]:
    """Dispatch one node through the recognizers."""
    for recognizer in _RECOGNIZERS:
        usages = recognizer(node, context)
        if usages is not None:
            return usages
    return []


def _destructured_key(entry: Node) -> Node | None:
    """Property key bound by one entry of an object pattern; rest elements have none."""
    if entry.type == "shorthand_property_identifier_pattern":
        return entry
    if entry.type == "pair_pattern":
        key = get_field(entry, "key")
        if key is not None and key.type in ("property_identifier", "string"):
            return key
        return None
    if entry.type == "object_assignment_pattern":
        left = get_field(entry, "left")
        if left is not None and left.type == "shorthand_property_identifier_pattern":
            return left
    return None


def env_chain(node: Node | None) -> Chain | None:
    """Classify ``process.env`` as the server chain and ``import.meta.env`` as the client chain."""
    node = unwrap(node)
    if node is None or node.type != "member_expression":
        return None

    prop = get_field(node, "property")
    if prop is None or prop.type != "property_identifier" or get_text(prop) != "env":
        return None

    obj = unwrap(get_field(node, "object"))
    if is_identifier(obj, "process"):
        return "server"
    if obj is not None and obj.type in ("meta_property", "member_expression"):
        if "".join(get_text(obj).split()) == "import.meta":
            return "client"
    return None


def infer_type_from_context(node: Node) -> InferredType | None:
    """Guess the expected type of a read from its enclosing expression."""
    parent = semantic_parent(node)
    if parent is None:
        return None

    if parent.type == "call_expression":
        callee = unwrap(get_field(parent, "function"))
        if callee is None or _contains(callee, node):
            return None
        if callee.type == "identifier" and get_text(callee) in NUMERIC_COERCIONS:
            return "number"
        if callee.type == "member_expression":
            if is_identifier(get_field(callee, "object"), "JSON") and (
                get_text(get_field(callee, "property")) == "parse"
            ):
                return "json"
        return None

    if parent.type == "binary_expression":
        operator = get_field(parent, "operator")
        if operator is None or get_text(operator) not in EQUALITY_OPERATORS:
            return None
        for side in ("left", "right"):
            operand = unwrap(get_field(parent, side))
            if operand is not None and not _contains(operand, node):
                if string_literal_value(operand) in ("true", "false"):
                    return "boolean"
        return None

    if parent.type == "member_expression":
        prop = get_field(parent, "property")
        if prop is not None and get_text(prop) == "split":
            return "array"

    return None


def _contains(outer: Node, inner: Node) -> bool:
    return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def scan_with_regex(content: str, context: _FileContext) -> list[Usage]:
    """Line-oriented fallback for files the syntax tree parser rejects."""
    usages: list[Usage] = []

    for index, line in enumerate(content.split("\n")):
        line_number = index + 1
        for pattern, access_pattern, chain in (
            (FALLBACK_DIRECT_PATTERN, "direct", "server"),
            (FALLBACK_BRACKET_PATTERN, "bracket", "server"),
            (FALLBACK_CLIENT_PATTERN, "direct", "client"),
        ):
            for match in pattern.finditer(line):
                name = match.group(1)
                usages.append(
                    Usage(
                        name=name,
                        file=context.file,
                        line=line_number,
                        column=match.start(),
                        access_pattern=access_pattern,
                        is_client_side=context.is_client(name, chain),
                    )
                )

    return usages


def is_client_variable(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(prefix) for prefix in prefixes)


def is_client_side_file(file_path: str) -> bool:
    """Check whether a path follows a UI-code convention (components, pages, hooks, .client.)."""
    path = "/" + PurePath(file_path).as_posix().lstrip("/")
    return any(pattern.search(path) for pattern in CLIENT_FILE_PATTERNS)


def get_unique_variable_names(usages: Iterable[Usage]) -> list[str]:
    """Distinct usage names in first-seen order, without the dynamic sentinel."""
    names = dict.fromkeys(u.name for u in usages if u.name != DYNAMIC_VARIABLE)
    return list(names)
