"""Utility helpers for the Seerbrowse service."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, TypeVar


IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
DEFAULT_IMAGE_PREFIX = "plugins/JellyfinJellyseerrIntegration/images"

YEAR_RE = re.compile(r"(18|19|20|21)\d{2}")

T = TypeVar("T")


def build_image_url(path: str | None, size: str, *, fallback: str) -> str:
    """Return an absolute image URL, or the bundled fallback image."""

    if not path:
        return f"{DEFAULT_IMAGE_PREFIX}/{fallback}.png"
    if path.startswith("http"):
        return path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{IMAGE_BASE_URL}/{size}{path}"


def extract_year(value: Any) -> int | None:
    """Return the year contained in a release date string."""

    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value:
        return None
    match = YEAR_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(0))


def normalize_entity_id(value: Any) -> str:
    """Return the string form used to key catalog entities."""

    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def select_by_names(
    names: Iterable[str],
    entries: Mapping[str, T],
    name_of,
) -> list[T]:
    """Resolve configured names against ``entries``, in configured order.

    Names without a matching entry are skipped. When several entries share a
    name the one with the lowest id wins so the result does not depend on the
    mapping's iteration order.
    """

    by_name: dict[str, tuple[str, T]] = {}
    for entry_id, entry in entries.items():
        name = name_of(entry)
        current = by_name.get(name)
        if current is None or _id_sort_key(entry_id) < _id_sort_key(current[0]):
            by_name[name] = (entry_id, entry)

    selected: list[T] = []
    for name in names:
        match = by_name.get(name)
        if match is not None:
            selected.append(match[1])
    return selected


def _id_sort_key(value: str) -> tuple[int, int, str]:
    if value.isdigit():
        return (0, int(value), "")
    return (1, 0, value)
