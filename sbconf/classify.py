"""
Functional classification of a configuration directory.

Each document is filed under the first of its top-level keys that the
category registry recognises. Documents that cannot be scanned, are not
objects, or carry no recognised key end up as individual "other" entries so a
single broken file never hides the rest of the directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .categories import Category, CategoryRegistry
from .document import parse
from .errors import InvalidDocument

DOCUMENT_SUFFIX = ".json"
UNMATCHED_PREFIX = "其他-"


@dataclass(frozen=True)
class CategoryEntry:
    """One presentation row: a display name bound to a single file."""

    name: str
    filename: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"FunctionName": self.name, "FileName": self.filename, "Order": self.order}


@dataclass(frozen=True)
class FunctionalCategory:
    name: str
    order: int
    files: tuple[str, ...]


@dataclass
class Classification:
    entries: list[CategoryEntry] = field(default_factory=list)
    categories: list[FunctionalCategory] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ordered_functional_config": [e.to_dict() for e in self.entries],
            "config_files": list(self.files),
        }


def match_category(document: bytes | str, registry: CategoryRegistry) -> Category | None:
    """Category of the first recognised top-level key, or None."""
    try:
        root = parse(document)
    except InvalidDocument:
        return None
    if root.kind != "object":
        return None
    for key in root.keys():
        category = registry.get(key)
        if category is not None:
            return category
    return None


def unmatched_name(filename: str, suffix: str = DOCUMENT_SUFFIX) -> str:
    return f"{UNMATCHED_PREFIX}{filename.removesuffix(suffix)}"


def classify(
    file_list: Iterable[str],
    file_bytes_by_name: Mapping[str, bytes],
    registry: CategoryRegistry | None = None,
    *,
    suffix: str = DOCUMENT_SUFFIX,
) -> Classification:
    """Group filenames into ranked functional categories.

    Args:
        file_list: Candidate filenames (already filtered to documents)
        file_bytes_by_name: Content per filename; a missing name counts as unparseable
        registry: Category table (defaults to the built-in sing-box roots)
        suffix: Document extension stripped from unmatched display names

    Returns:
        Entries ordered by rank then display name, followed by one "other"
        entry per unmatched file in filename order.
    """
    registry = registry or CategoryRegistry()
    files = sorted(file_list)

    grouped: dict[str, tuple[Category, list[str]]] = {}
    unmatched: list[str] = []
    for filename in files:
        content = file_bytes_by_name.get(filename)
        category = match_category(content, registry) if content is not None else None
        if category is None:
            unmatched.append(filename)
            continue
        grouped.setdefault(category.name, (category, []))[1].append(filename)

    entries: list[CategoryEntry] = []
    categories: list[FunctionalCategory] = []
    for name, (category, members) in grouped.items():
        members.sort()
        categories.append(FunctionalCategory(name=name, order=category.rank, files=tuple(members)))
        if len(members) == 1:
            entries.append(CategoryEntry(name=name, filename=members[0], order=category.rank))
            continue
        for i, filename in enumerate(members, start=1):
            entries.append(CategoryEntry(name=f"{name} {i}", filename=filename, order=category.rank))

    entries.sort(key=lambda e: (e.order, e.name))
    categories.sort(key=lambda c: (c.order, c.name))

    other_rank = registry.unmatched_rank
    for filename in sorted(unmatched):
        name = unmatched_name(filename, suffix)
        entries.append(CategoryEntry(name=name, filename=filename, order=other_rank))
        categories.append(FunctionalCategory(name=name, order=other_rank, files=(filename,)))

    return Classification(entries=entries, categories=categories, unmatched=sorted(unmatched), files=files)
