"""
Client-side style part search over an already loaded collection.

Shop inventories are small, so a linear scan is all that is needed.
"""
from typing import Iterable, List, Optional, TypeVar

DROPDOWN_LIMIT = 10

PartT = TypeVar("PartT")


def is_low_stock(part) -> bool:
    return part.stock_quantity < part.min_stock


def matches(part, term: str, include_category: bool = False) -> bool:
    """Case-insensitive substring match on part number and name (and category)."""
    needle = term.lower()
    fields = [part.part_number, part.part_name]
    if include_category:
        fields.append(part.category)
    return any(needle in (value or "").lower() for value in fields)


def filter_parts(
    parts: Iterable[PartT],
    term: Optional[str],
    include_category: bool = False,
    limit: Optional[int] = None
) -> List[PartT]:
    """
    Filter parts keeping their original order.

    An empty term matches everything. `limit` caps the result for
    incremental-search dropdowns; table filtering passes no limit.
    """
    term = (term or "").strip()
    results = []
    for part in parts:
        if term and not matches(part, term, include_category):
            continue
        results.append(part)
        if limit is not None and len(results) >= limit:
            break
    return results


def search_dropdown(parts: Iterable[PartT], term: Optional[str]) -> List[PartT]:
    """First ten number/name matches; nothing until the user has typed something."""
    if not (term or "").strip():
        return []
    return filter_parts(parts, term, limit=DROPDOWN_LIMIT)


def filter_table(parts: Iterable[PartT], term: Optional[str]) -> List[PartT]:
    """All number/name/category matches, for the inventory table."""
    return filter_parts(parts, term, include_category=True)
