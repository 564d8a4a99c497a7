"""
Read and write values at symbolic paths.

Writes come in two flavours, picked from the shape of the submitted text:

- structured fragments (`{...}` or `[...]` once trimmed) are spliced in raw,
  without validation or re-escaping, so a user can paste an outbound that
  carries `//` comments. The resulting document may not be strict JSON.
- anything else is written as a JSON string with standard escaping.

The raw splice is the only place the editor skips validation. Nothing else
in the package relies on it.
"""

from __future__ import annotations

from . import document as doc
from .errors import PathNotFound, WriteFailure
from .paths import resolve_path


def is_structured_fragment(text: str) -> bool:
    """True when trimmed `text` is delimited like an object or an array."""
    stripped = text.strip()
    if len(stripped) < 2:
        return False
    return (stripped[0] == "{" and stripped[-1] == "}") or (stripped[0] == "[" and stripped[-1] == "]")


def write_value(document: bytes | str, symbolic_path: str, new_value_text: str) -> bytes:
    """Return the complete document with `new_value_text` stored at `symbolic_path`.

    An empty path replaces the whole document verbatim. Otherwise the path is
    resolved against `document` as given (the current on-disk bytes), so a tag
    lookup always reflects what is actually stored.

    Raises:
        PathNotFound: the resolved path does not exist
        MalformedPath: the accessor rejects the path syntax
        WriteFailure: the splice could not be applied
    """
    if not symbolic_path:
        try:
            return new_value_text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise WriteFailure(f"Cannot write document: {e.reason}") from e

    resolved = resolve_path(document, symbolic_path)
    try:
        if is_structured_fragment(new_value_text):
            return doc.set_raw(document, resolved, new_value_text.strip())
        return doc.set_value(document, resolved, new_value_text)
    except PathNotFound as e:
        raise PathNotFound(symbolic_path, resolved) from e


def read_value(document: bytes | str, symbolic_path: str) -> str:
    """Text stored at `symbolic_path` (the whole document for an empty path)."""
    if not symbolic_path:
        return doc.decode_document(document)

    resolved = resolve_path(document, symbolic_path)
    text = doc.get_text(document, resolved)
    if text is None:
        raise PathNotFound(symbolic_path, resolved)
    return text
