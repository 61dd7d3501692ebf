"""Tests for TradeView: filter → sort → paginate with page resets."""

from decimal import Decimal

import pytest

from trade_ledger.core.enums import PnlOutcome, SortDirection, SortKey
from trade_ledger.ledger.sorting import SortSpec
from trade_ledger.ledger.view import TradeView, filtered_and_sorted


@pytest.fixture
def trades(make_closed_trades):
    # 45 trades alternating win / loss
    return make_closed_trades(["10" if i % 2 else "-5" for i in range(45)])


class TestPaging:
    def test_three_pages_newest_first(self, trades):
        view = TradeView(page_size=20)
        view.go_to_page(3, trades)
        result = view.render(trades)
        assert result.page.total_pages == 3
        assert [t.id for t in result.page.items] == [5, 4, 3, 2, 1]

    def test_navigation_is_clamped(self, trades):
        view = TradeView(page_size=20)
        assert view.go_to_page(10, trades) == 3
        assert view.go_to_page(-2, trades) == 1

    def test_render_clamps_page_after_list_shrinks(self, trades):
        view = TradeView(page_size=20)
        view.go_to_page(3, trades)
        result = view.render(trades[:25])
        assert result.page.page == 2
        assert view.page == 2
        assert [t.id for t in result.page.items] == [5, 4, 3, 2, 1]

    def test_filter_change_resets_page(self, trades):
        view = TradeView(page_size=20)
        view.go_to_page(3, trades)
        view.set_filters(outcome=PnlOutcome.WIN)
        assert view.page == 1

    def test_sort_change_resets_page(self, trades):
        view = TradeView(page_size=20)
        view.go_to_page(2, trades)
        view.sort_by(SortKey.PNL)
        assert view.page == 1
        assert view.sort == SortSpec(SortKey.PNL, SortDirection.ASCENDING)

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            TradeView(page_size=0)


class TestFilteredMetrics:
    def test_only_when_filter_active(self, trades):
        view = TradeView()
        assert view.render(trades).filtered_metrics is None

        view.set_filters(outcome=PnlOutcome.WIN)
        result = view.render(trades)
        assert result.filters_active
        assert result.filtered_count == 22
        assert result.total_count == 45
        assert result.filtered_metrics.total_pnl == Decimal("220")
        assert result.filtered_metrics.initial_capital == 0

    def test_reset_filters(self, trades):
        view = TradeView()
        view.set_filters(asset="ETH")
        view.reset_filters()
        assert not view.filters.is_active


class TestMemoization:
    def test_identical_inputs_hit_cache(self, trades):
        view = TradeView()
        filtered_and_sorted.cache_clear()
        view.visible(trades)
        view.visible(trades)
        assert filtered_and_sorted.cache_info().hits >= 1
