"""
Span-preserving scanner for sing-box configuration documents.

Produces a lightweight tree of `Node` objects that remember where each value
starts and ends in the decoded text. Nothing is re-serialized: edits are made
by splicing the text between those offsets, so comments and the user's own
formatting elsewhere in the document survive a write.

The scanner is deliberately tolerant of what users paste into raw fragments:
- `// line` and `/* block */` comments wherever whitespace is allowed
- stray and trailing commas between members and elements
- raw control characters inside strings
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from ..errors import InvalidDocument

NodeKind = Literal["object", "array", "string", "number", "true", "false", "null"]

_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_LITERALS: dict[str, NodeKind] = {"true": "true", "false": "false", "null": "null"}
_WHITESPACE = " \t\r\n"
_BOM = "\ufeff"
MAX_DEPTH = 200


@dataclass
class Node:
    """One JSON value located at `source[start:end]`."""

    kind: NodeKind
    start: int
    end: int
    source: str = field(repr=False)
    members: list[tuple[str, "Node"]] = field(default_factory=list, repr=False)
    items: list["Node"] = field(default_factory=list, repr=False)

    @property
    def raw(self) -> str:
        return self.source[self.start : self.end]

    @property
    def is_container(self) -> bool:
        return self.kind in ("object", "array")

    def keys(self) -> list[str]:
        return [key for key, _ in self.members]

    def value(self) -> Any:
        """Decode this node into plain Python data."""
        if self.kind == "object":
            out: dict[str, Any] = {}
            for key, child in self.members:
                out.setdefault(key, child.value())
            return out
        if self.kind == "array":
            return [child.value() for child in self.items]
        if self.kind == "string":
            return decode_string(self.raw, self.start)
        if self.kind == "number":
            return json.loads(self.raw)
        return {"true": True, "false": False, "null": None}[self.kind]


def decode_string(raw: str, offset: int = 0) -> str:
    """Unescape a quoted JSON string literal."""
    try:
        return json.loads(raw, strict=False)
    except json.JSONDecodeError as e:
        raise InvalidDocument(f"invalid string literal: {e.msg}", offset=offset + e.pos) from e


def decode_document(data: bytes | str) -> str:
    """Return document text, decoding UTF-8 bytes."""
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidDocument("document is not valid UTF-8", offset=e.start) from e


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 1 if text.startswith(_BOM) else 0
        self.depth = 0

    def fail(self, message: str) -> InvalidDocument:
        return InvalidDocument(message, offset=self.pos)

    def skip_blank(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif text.startswith("//", self.pos):
                newline = text.find("\n", self.pos)
                self.pos = n if newline == -1 else newline + 1
            elif text.startswith("/*", self.pos):
                close = text.find("*/", self.pos + 2)
                if close == -1:
                    raise self.fail("unterminated block comment")
                self.pos = close + 2
            else:
                return

    def parse_document(self) -> Node:
        self.skip_blank()
        root = self.parse_value()
        self.skip_blank()
        if self.pos != len(self.text):
            raise self.fail("unexpected content after top-level value")
        return root

    def parse_value(self) -> Node:
        if self.pos >= len(self.text):
            raise self.fail("unexpected end of document")
        ch = self.text[self.pos]
        if ch in "{[":
            if self.depth >= MAX_DEPTH:
                raise self.fail(f"containers nested deeper than {MAX_DEPTH} levels")
            self.depth += 1
            try:
                return self.parse_object() if ch == "{" else self.parse_array()
            finally:
                self.depth -= 1
        if ch == '"':
            start = self.pos
            self.pos = self.string_end(start)
            return Node("string", start, self.pos, self.text)
        if ch == "-" or ch.isdigit():
            match = _NUMBER_RE.match(self.text, self.pos)
            if match is None:
                raise self.fail("malformed number")
            start, self.pos = self.pos, match.end()
            return Node("number", start, self.pos, self.text)
        for literal, kind in _LITERALS.items():
            if self.text.startswith(literal, self.pos):
                start = self.pos
                self.pos += len(literal)
                return Node(kind, start, self.pos, self.text)
        raise self.fail(f"unexpected character {ch!r}")

    def string_end(self, start: int) -> int:
        """Offset just past the closing quote of the string opening at `start`."""
        text = self.text
        i = start + 1
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                return i + 1
            i += 1
        self.pos = start
        raise self.fail("unterminated string")

    def parse_object(self) -> Node:
        start = self.pos
        self.pos += 1
        node = Node("object", start, start, self.text)
        while True:
            self.skip_blank()
            if self.pos >= len(self.text):
                raise self.fail("unterminated object")
            ch = self.text[self.pos]
            if ch == "}":
                self.pos += 1
                break
            if ch == ",":
                self.pos += 1
                continue
            if ch != '"':
                raise self.fail("expected string key")
            key_start = self.pos
            self.pos = self.string_end(key_start)
            key = decode_string(self.text[key_start : self.pos], key_start)
            self.skip_blank()
            if self.pos >= len(self.text) or self.text[self.pos] != ":":
                raise self.fail(f"expected ':' after key {key!r}")
            self.pos += 1
            self.skip_blank()
            node.members.append((key, self.parse_value()))
        node.end = self.pos
        return node

    def parse_array(self) -> Node:
        start = self.pos
        self.pos += 1
        node = Node("array", start, start, self.text)
        while True:
            self.skip_blank()
            if self.pos >= len(self.text):
                raise self.fail("unterminated array")
            ch = self.text[self.pos]
            if ch == "]":
                self.pos += 1
                break
            if ch == ",":
                self.pos += 1
                continue
            node.items.append(self.parse_value())
        node.end = self.pos
        return node


def parse(data: bytes | str) -> Node:
    """Scan a whole document and return its root node."""
    text = decode_document(data)
    return _Scanner(text).parse_document()
