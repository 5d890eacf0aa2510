"""
Document accessor for policygate.

Resolves slash-delimited pointer paths ("/build/artifacts/0/name") against a
parsed metadata document. Resolution never raises: a missing key, an index
out of range, or a step through a scalar all yield MISSING.

MISSING is distinct from None, because a JSON null is a present value.
"""

from typing import Any, Final


class _Missing:
    """Sentinel type for an unresolvable path."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


def unescape_segment(segment: str) -> str:
    """Decode a pointer segment (~1 -> '/', then ~0 -> '~')."""
    return segment.replace("~1", "/").replace("~0", "~")


def split_pointer(pointer: str) -> list[str] | None:
    """
    Split a pointer into decoded segments.

    Returns:
        The segments ([] for the whole document), or None if the
        pointer is not well formed.
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        return None
    return [unescape_segment(part) for part in pointer[1:].split("/")]


def _parse_index(segment: str) -> int | None:
    """Parse a canonical array index: digits only, no leading zeros."""
    if not segment.isascii() or not segment.isdigit():
        return None
    if len(segment) > 1 and segment.startswith("0"):
        return None
    return int(segment)


def resolve_pointer(document: Any, pointer: str) -> Any:
    """
    Resolve a pointer path against a document.

    Args:
        document: Parsed document (dicts, lists, and scalars)
        pointer: Pointer path; "" denotes the whole document

    Returns:
        The node at the path, or MISSING if any segment does not resolve

    Examples:
        resolve_pointer({"a": [1, 2]}, "/a/1") -> 2
        resolve_pointer({"a/b": 1}, "/a~1b") -> 1
        resolve_pointer({"a": "x"}, "/a/0") -> MISSING
    """
    segments = split_pointer(pointer)
    if segments is None:
        return MISSING

    node = document
    for segment in segments:
        if isinstance(node, dict):
            if segment not in node:
                return MISSING
            node = node[segment]
        elif isinstance(node, list):
            index = _parse_index(segment)
            if index is None or index >= len(node):
                return MISSING
            node = node[index]
        else:
            return MISSING

    return node
