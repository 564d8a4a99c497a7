"""Span-preserving document access (scan, look up, splice)."""

from .accessor import (
    escape_segment,
    exists,
    find,
    get,
    get_text,
    iter_array,
    lookup,
    set_raw,
    set_value,
    split_path,
)
from .scanner import Node, decode_document, parse

__all__ = [
    "Node",
    "decode_document",
    "escape_segment",
    "exists",
    "find",
    "get",
    "get_text",
    "iter_array",
    "lookup",
    "parse",
    "set_raw",
    "set_value",
    "split_path",
]
