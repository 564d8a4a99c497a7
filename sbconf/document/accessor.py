"""
Dotted-path access to configuration documents.

Paths follow the small gjson-style subset the editor needs:
- segments are separated by `.`
- `\\` escapes the next character, so `route\\.v2` is the single key `route.v2`
- a segment of ASCII digits indexes an array
- the empty path addresses the whole document

Writes splice text into the span of an existing value and leave every other
byte of the document untouched.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from ..errors import InvalidDocument, PathNotFound, WriteFailure, MalformedPath
from .scanner import Node, decode_document, parse

_WILDCARDS = ("*", "?")


def split_path(path: str) -> list[str]:
    """Split a dotted path into literal segments."""
    if path == "":
        return []

    segments: list[str] = []
    current: list[str] = []
    escaped = False
    for ch in path:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ".":
            segments.append(_finish_segment(path, current))
            current = []
        elif ch in _WILDCARDS:
            raise MalformedPath(path, f"wildcard character {ch!r} is not allowed")
        else:
            current.append(ch)
    if escaped:
        raise MalformedPath(path, "dangling escape character")
    segments.append(_finish_segment(path, current))
    return segments


def _finish_segment(path: str, chars: list[str]) -> str:
    if not chars:
        raise MalformedPath(path, "empty path segment")
    return "".join(chars)


def escape_segment(key: str) -> str:
    """Escape a literal key so it survives `split_path` as one segment."""
    out = []
    for ch in key:
        if ch in ("\\", ".", *_WILDCARDS):
            out.append("\\")
        out.append(ch)
    return "".join(out)


def _as_index(segment: str, count: int) -> int | None:
    """Array index for `segment`, or None when it is not one below `count`."""
    if not (segment.isascii() and segment.isdigit()):
        return None
    # Compare lengths first so oversized segments never reach int().
    digits = segment.lstrip("0") or "0"
    if len(digits) > len(str(count)):
        return None
    index = int(digits)
    return index if index < count else None


def lookup(node: Node, segment: str) -> Node | None:
    """Child of `node` addressed by one literal segment (first duplicate key wins)."""
    if node.kind == "object":
        for key, child in node.members:
            if key == segment:
                return child
        return None
    if node.kind == "array":
        index = _as_index(segment, len(node.items))
        if index is None:
            return None
        return node.items[index]
    return None


def iter_array(node: Node) -> Iterator[tuple[int, Node]]:
    """Yield `(index, element)` pairs of an array node in document order."""
    if node.kind != "array":
        return
    yield from enumerate(node.items)


def find(root: Node, path: str) -> Node | None:
    """Walk an already-scanned tree."""
    node: Node | None = root
    for segment in split_path(path):
        if node is None:
            return None
        node = lookup(node, segment)
    return node


def get(document: bytes | str, path: str) -> Node | None:
    """Node at `path`, or None when the path does not exist."""
    split_path(path)
    return find(parse(document), path)


def get_text(document: bytes | str, path: str) -> str | None:
    """Text of the value at `path`: unescaped for strings, raw JSON otherwise."""
    node = get(document, path)
    if node is None:
        return None
    if node.kind == "string":
        return node.value()
    return node.raw


def exists(document: bytes | str, path: str) -> bool:
    return get(document, path) is not None


def _splice(document: bytes | str, path: str, replacement: str) -> bytes:
    split_path(path)
    try:
        text = decode_document(document)
        root = parse(text)
    except InvalidDocument as e:
        raise WriteFailure(f"Cannot write '{path}': {e}") from e

    node = find(root, path)
    if node is None:
        raise PathNotFound(path)

    updated = text[: node.start] + replacement + text[node.end :]
    try:
        return updated.encode("utf-8")
    except UnicodeEncodeError as e:
        raise WriteFailure(f"Cannot write '{path}': {e.reason}") from e


def set_raw(document: bytes | str, path: str, fragment: str) -> bytes:
    """
    Replace the value at `path` with `fragment` exactly as given.

    The fragment is neither validated nor escaped. This is the escape hatch for
    pasting objects that carry comments or other non-strict content; the result
    is not guaranteed to be strict JSON.
    """
    return _splice(document, path, fragment)


def set_value(document: bytes | str, path: str, value: Any) -> bytes:
    """Replace the value at `path` with the JSON encoding of `value`."""
    try:
        encoded = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise WriteFailure(f"Cannot encode value for '{path}': {e}") from e
    return _splice(document, path, encoded)
