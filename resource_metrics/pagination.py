"""Pagination parameter parsing and collection envelope helpers."""

from __future__ import annotations

from typing import Any

MAX_PAGE = 10000


class PaginationError(ValueError):
    """Raised when a pagination parameter is not an integer."""


def parse_int_query(raw: str | None, *, name: str, default: int, maximum: int) -> int:
    """
    Parse a positive integer query parameter.

    Missing values and values below 1 fall back to the default; values above
    the maximum are clamped to it.
    """

    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise PaginationError(f"invalid value for '{name}': must be an integer") from exc
    if value < 1:
        return default
    return min(value, maximum)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_collection(
    items: list[dict[str, Any]],
    *,
    total: int | None,
    limit: int,
    page: int,
) -> dict[str, Any]:
    return {
        "items": items,
        "total": total,
        "limit": limit,
        "page": page,
    }
