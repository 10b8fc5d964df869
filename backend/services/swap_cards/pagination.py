"""
Pagination over grouped swap cards.

The unit of pagination is a whole card (swap plus all its proposals), so a
swap is never split across pages.
"""

from typing import Any, Dict, List, Sequence, Tuple, TypeVar

T = TypeVar('T')


def paginate(cards: Sequence[T], limit: int, offset: int) -> Tuple[List[T], Dict[str, Any]]:
    """
    Slice an ordered card list.

    Args:
        cards: Cards in their final order
        limit: Page size, > 0
        offset: Cards to skip, >= 0

    Returns:
        (page, {total, limit, offset, hasMore, nextOffset})

    Raises:
        ValueError: limit <= 0 or offset < 0
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValueError(f"offset must be a non-negative integer, got {offset!r}")

    total = len(cards)
    page = list(cards[offset:offset + limit])
    has_more = (offset + len(page)) < total

    return page, {
        'total': total,
        'limit': limit,
        'offset': offset,
        'hasMore': has_more,
        'nextOffset': offset + len(page) if has_more else None,
    }
