"""Fixed-size, 1-indexed pagination of an ordered trade list."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .record import Trade


@dataclass(frozen=True)
class Page:
    items: tuple[Trade, ...]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def start_item(self) -> int:
        """1-based position of the first item shown, 0 for an empty page."""
        if not self.items:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_item(self) -> int:
        if not self.items:
            return 0
        return min(self.start_item + self.page_size - 1, self.total_items)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def total_pages(count: int, page_size: int) -> int:
    """``ceil(count / page_size)``; 0 for an empty list."""
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return math.ceil(max(count, 0) / page_size)


def paginate(trades: Sequence[Trade], page: int, page_size: int) -> Page:
    """Slice *trades* into page number *page* (1-indexed).

    A page outside ``1..total_pages`` yields no items.
    """
    pages = total_pages(len(trades), page_size)
    if page < 1:
        items: tuple[Trade, ...] = ()
    else:
        start = (page - 1) * page_size
        items = tuple(trades[start:start + page_size])
    return Page(
        items=items,
        page=page,
        page_size=page_size,
        total_items=len(trades),
        total_pages=pages,
    )
