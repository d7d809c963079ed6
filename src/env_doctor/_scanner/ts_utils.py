"""
Utilities for working with tree-sitter JavaScript/TypeScript nodes.
Provides helper functions for common node operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

    from tree_sitter import Node

# Wrappers that do not change the value of the expression they hold
_TRANSPARENT_TYPES = frozenset(
    {"parenthesized_expression", "non_null_expression", "as_expression", "satisfies_expression"}
)


def get_text(node: Node | None) -> str:
    """Safely get the source text of a node."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def get_field(node: Node, field_name: str) -> Node | None:
    return node.child_by_field_name(field_name)


def walk_tree(node: Node) -> Generator[Node, None, None]:
    """Walk a tree depth first, yielding every named node."""
    cursor = node.walk()
    visited_children = False
    while True:
        if not visited_children:
            if cursor.node.is_named:
                yield cursor.node
            if cursor.goto_first_child():
                continue
        if cursor.goto_next_sibling():
            visited_children = False
        elif cursor.goto_parent():
            visited_children = True
        else:
            break


def unwrap(node: Node | None) -> Node | None:
    """Strip parentheses and TypeScript assertions around an expression."""
    while node is not None and node.type in _TRANSPARENT_TYPES:
        node = node.named_children[0] if node.named_children else None
    return node


def semantic_parent(node: Node) -> Node | None:
    """Return the nearest enclosing node, skipping argument lists and wrappers."""
    parent = node.parent
    while parent is not None and (parent.type in _TRANSPARENT_TYPES or parent.type == "arguments"):
        parent = parent.parent
    return parent


def is_identifier(node: Node | None, name: str) -> bool:
    return node is not None and node.type == "identifier" and get_text(node) == name


def string_literal_value(node: Node | None) -> str | None:
    """Return the value of a quoted string literal, else None.

    Template strings are not literals here, even without substitutions.
    """
    if node is None or node.type != "string":
        return None
    chars: list[str] = []
    for child in node.named_children:
        if child.type == "string_fragment":
            chars.append(get_text(child))
        elif child.type == "escape_sequence":
            chars.append(_decode_escape(get_text(child)))
    return "".join(chars)


_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "b": "\b", "f": "\f", "v": "\v"}


def _decode_escape(sequence: str) -> str:
    body = sequence[1:]
    if body[:1] in ("u", "x"):
        hex_digits = body[1:].strip("{}")
        try:
            return chr(int(hex_digits, 16))
        except ValueError:
            return sequence
    return _SIMPLE_ESCAPES.get(body, body)


def position(node: Node) -> tuple[int, int]:
    """1-based line and 0-based column of a node's start."""
    row, column = node.start_point
    return row + 1, column
