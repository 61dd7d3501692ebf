"""Trade list view: filter → sort → paginate, plus filtered metrics.

:class:`TradeView` owns the ephemeral list state (filters, sort, page)
and resets the page to 1 whenever filters or sort change, so a stale
page number never shows an out-of-range slice.

The heavy lifting is done by pure functions memoized on their
arguments: trades are passed as tuples of frozen records and specs are
frozen dataclasses, so identical inputs hit the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from functools import lru_cache

from trade_ledger.core.enums import SortKey

from .filters import FilterSpec, apply_filters
from .metrics import LedgerMetrics, compute_metrics
from .pagination import Page, paginate, total_pages
from .record import Trade
from .sorting import SortSpec, apply_sort

_CACHE_SIZE = 32


@lru_cache(maxsize=_CACHE_SIZE)
def filtered_and_sorted(
    trades: tuple[Trade, ...],
    filters: FilterSpec,
    sort: SortSpec,
) -> tuple[Trade, ...]:
    return tuple(apply_sort(apply_filters(trades, filters), sort))


@lru_cache(maxsize=_CACHE_SIZE)
def cached_metrics(
    trades: tuple[Trade, ...],
    initial_capital: Decimal,
) -> LedgerMetrics:
    return compute_metrics(trades, initial_capital)


@dataclass(frozen=True)
class TradeViewResult:
    page: Page
    filtered_count: int
    total_count: int
    filters_active: bool
    filtered_metrics: LedgerMetrics | None  # Only when a filter is active


class TradeView:
    """Filter/sort/page state for one trade list.

    Parameters
    ----------
    page_size : int
        Trades per page.  Default 20.
    sort : SortSpec | None
        Initial sort; defaults to id descending (newest first).
    """

    def __init__(self, *, page_size: int = 20, sort: SortSpec | None = None) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self._page_size = page_size
        self._filters = FilterSpec()
        self._sort = sort or SortSpec()
        self._page = 1

    @property
    def filters(self) -> FilterSpec:
        return self._filters

    @property
    def sort(self) -> SortSpec:
        return self._sort

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    # ------------------------------------------------------------------ #
    # State changes                                                        #
    # ------------------------------------------------------------------ #

    def set_filters(self, **changes: object) -> FilterSpec:
        """Merge field changes into the filters and go back to page 1."""
        self._filters = replace(self._filters, **changes)
        self._page = 1
        return self._filters

    def reset_filters(self) -> None:
        self._filters = FilterSpec()
        self._page = 1

    def sort_by(self, key: SortKey) -> SortSpec:
        """Toggle sorting on *key* (header-click rule) and go back to page 1."""
        self._sort = self._sort.toggled(key)
        self._page = 1
        return self._sort

    def set_sort(self, sort: SortSpec) -> None:
        self._sort = sort
        self._page = 1

    def go_to_page(self, page: int, trades: tuple[Trade, ...]) -> int:
        """Move to *page*, clamped to the pages that exist."""
        last = max(1, total_pages(len(self.visible(trades)), self._page_size))
        self._page = min(max(1, page), last)
        return self._page

    # ------------------------------------------------------------------ #
    # Rendering                                                            #
    # ------------------------------------------------------------------ #

    def visible(self, trades: tuple[Trade, ...]) -> tuple[Trade, ...]:
        """All trades passing the filters, in display order."""
        return filtered_and_sorted(trades, self._filters, self._sort)

    def render(self, trades: tuple[Trade, ...]) -> TradeViewResult:
        visible = self.visible(trades)
        # Deletes or filter changes can leave the current page past the end
        self._page = min(self._page, max(1, total_pages(len(visible), self._page_size)))
        active = self._filters.is_active
        return TradeViewResult(
            page=paginate(visible, self._page, self._page_size),
            filtered_count=len(visible),
            total_count=len(trades),
            filters_active=active,
            filtered_metrics=cached_metrics(visible, Decimal("0")) if active else None,
        )
