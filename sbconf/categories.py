"""
Functional category registry.

Maps a sing-box top-level key to the display name and rank used by the
directory overview. The table is data, not a type hierarchy: an ordered
mapping built once at startup, optionally amended from the settings file.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator


@dataclass(frozen=True)
class Category:
    key: str  # top-level document key, e.g. "outbounds"
    name: str  # display name
    rank: int  # ascending display order


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category("log", "日志", 1),
    Category("experimental", "实验性", 2),
    Category("dns", "DNS", 3),
    Category("inbounds", "入站", 4),
    Category("outbounds", "出站", 5),
    Category("route", "路由规则", 6),
    Category("ntp", "NTP", 7),
    Category("fakedns", "FakeDNS", 8),
    Category("warp", "WARP", 9),
)


class CategoryRegistry:
    """Ordered, read-only lookup from root key to category."""

    def __init__(self, categories: Iterable[Category] = DEFAULT_CATEGORIES) -> None:
        self._by_key: dict[str, Category] = {}
        for category in categories:
            self._by_key[category.key] = category

    def get(self, key: str) -> Category | None:
        return self._by_key.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[Category]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def unmatched_rank(self) -> int:
        """Rank that sorts after every registered category."""
        highest = max((c.rank for c in self._by_key.values()), default=0)
        return max(len(self._by_key), highest) + 1

    def with_overrides(self, overrides: Iterable[Category]) -> "CategoryRegistry":
        """New registry where `overrides` replace same-key rows and append new ones."""
        merged = dict(self._by_key)
        for category in overrides:
            merged[category.key] = category
        return CategoryRegistry(merged.values())


def parse_category_rows(rows: Any) -> list[Category]:
    """
    Parse `[[categories]]` tables from the settings file.

    Each row needs `key`, `name` and an integer `rank`.

    Raises:
        ValueError: If a row is not a table or misses a required field
    """
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ValueError("categories must be an array of tables")

    parsed: list[Category] = []
    for i, raw in enumerate(rows):
        if not isinstance(raw, dict):
            raise ValueError(f"categories[{i}] must be a table")

        key = str(raw.get("key", "")).strip()
        if not key:
            raise ValueError(f"categories[{i}].key is required")

        name = str(raw.get("name", "")).strip()
        if not name:
            raise ValueError(f"categories[{i}].name is required")

        rank = raw.get("rank")
        if not isinstance(rank, int) or isinstance(rank, bool):
            raise ValueError(f"categories[{i}].rank must be an integer")

        parsed.append(Category(key=key, name=name, rank=rank))
    return parsed
