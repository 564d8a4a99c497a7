"""Navigable key listing for a configuration document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .document import Node, iter_array, lookup, parse
from .errors import InvalidDocument
from .paths import TAGGED_ROOTS


@dataclass(frozen=True)
class KeyListing:
    """Keys to present for navigation.

    `context_key` is set when the listing drilled into the document's single
    top-level key; the keys are then that container's children.
    """

    keys: list[str] = field(default_factory=list)
    context_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"keys": list(self.keys)}
        if self.context_key is not None:
            d["root_context_key"] = self.context_key
        return d


def _display_key(root_key: str, index: int, element: Node) -> str:
    if root_key in TAGGED_ROOTS:
        tag = lookup(element, "tag")
        if tag is not None and tag.kind == "string":
            text = tag.value()
            if text:
                return text
    return str(index)


def _child_keys(root_key: str, container: Node) -> list[str]:
    if container.kind == "object":
        return container.keys()
    return [_display_key(root_key, i, element) for i, element in iter_array(container)]


def list_keys(document: bytes | str) -> KeyListing:
    """List top-level keys, or the children of a lone top-level container.

    Raises:
        InvalidDocument: the document cannot be scanned or is not an object
    """
    root = parse(document)
    if root.kind != "object":
        raise InvalidDocument("document is not a JSON object")

    if len(root.members) == 1:
        only_key, value = root.members[0]
        if value.is_container:
            return KeyListing(keys=_child_keys(only_key, value), context_key=only_key)

    return KeyListing(keys=root.keys())
