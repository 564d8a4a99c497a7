"""
Symbolic path resolution.

Users address inbound/outbound entries by tag (`outbounds.proxy-hk`) rather
than by position. `resolve_path` rewrites such a path into the positional form
the document accessor understands (`outbounds.3`). Everything else passes
through untouched.
"""

from __future__ import annotations

from .document import iter_array, lookup, parse
from .errors import InvalidDocument

# Array-valued roots whose elements are addressable by their `tag` field.
TAGGED_ROOTS = ("outbounds", "inbounds")


def resolve_path(document: bytes | str, symbolic_path: str) -> str:
    """Translate a tag-based path into a positional one.

    Only the first segment is inspected. When it names a tagged root and the
    second segment equals the `tag` of an element, the earliest such element's
    index replaces the tag. If no element matches, the path is returned as-is
    so the following lookup fails as "not found" instead of touching another
    entry.
    """
    if not symbolic_path:
        return ""

    root_key, sep, selector = symbolic_path.partition(".")
    if not sep or root_key not in TAGGED_ROOTS:
        return symbolic_path

    try:
        root = parse(document)
    except InvalidDocument:
        return symbolic_path

    entries = lookup(root, root_key)
    if entries is None or entries.kind != "array":
        return symbolic_path

    for index, entry in iter_array(entries):
        tag = lookup(entry, "tag")
        if tag is not None and tag.kind == "string" and tag.value() == selector:
            return f"{root_key}.{index}"

    return symbolic_path
