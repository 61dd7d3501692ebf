"""Tests for ledger metrics and losing-streak detection."""

import math
from decimal import Decimal

import pytest

from trade_ledger.ledger.book import open_trade
from trade_ledger.ledger.metrics import (
    compute_metrics,
    current_losing_streak,
    longest_losing_streak,
    profit_factor,
)


class TestComputeMetrics:
    def test_reference_example(self, make_closed_trades):
        trades = make_closed_trades(["100", "-50", "25"])
        m = compute_metrics(trades, Decimal("1000"))
        assert m.total_pnl == Decimal("75")
        assert m.win_rate == pytest.approx(2 / 3)
        assert m.profit_factor == pytest.approx(2.5)
        assert m.current_capital == Decimal("1075")
        assert m.return_pct == pytest.approx(0.075)

    def test_empty_ledger(self):
        m = compute_metrics((), Decimal("500"))
        assert m.total_trades == 0
        assert m.win_rate == 0.0
        assert m.profit_factor == 0.0
        assert m.current_capital == Decimal("500")

    def test_open_trades_do_not_contribute(self, make_closed_trades, make_draft):
        trades = open_trade(make_closed_trades(["10", "-5"]), make_draft(30))
        m = compute_metrics(trades)
        assert m.total_trades == 3
        assert m.open_trades == 1
        assert m.closed_trades == 2
        assert m.total_pnl == Decimal("5")

    def test_break_even_is_a_loss_but_not_gross_loss(self, make_closed_trades):
        m = compute_metrics(make_closed_trades(["10", "0"]))
        assert m.wins == 1
        assert m.losses == 1
        assert m.gross_loss == 0
        assert math.isinf(m.profit_factor)

    def test_averages_and_extremes(self, make_closed_trades):
        m = compute_metrics(make_closed_trades(["30", "-10", "10", "-20"]))
        assert m.average_win == Decimal("20")
        assert m.average_loss == Decimal("-15")
        assert m.largest_win == Decimal("30")
        assert m.largest_loss == Decimal("-20")

    def test_to_dict_is_json_ready(self, make_closed_trades):
        data = compute_metrics(make_closed_trades(["1"]), Decimal("10")).to_dict()
        assert data["total_pnl"] == "1"
        assert data["current_capital"] == "11"


class TestProfitFactor:
    def test_no_gains(self):
        assert profit_factor(Decimal("0"), Decimal("10")) == 0.0

    def test_gains_without_losses(self):
        assert profit_factor(Decimal("10"), Decimal("0")) == math.inf

    def test_ratio(self):
        assert profit_factor(Decimal("30"), Decimal("20")) == pytest.approx(1.5)


class TestLosingStreak:
    def test_trailing_losses(self, make_closed_trades):
        trades = make_closed_trades(["5", "-1", "0", "-3"])
        assert current_losing_streak(trades) == 3

    def test_win_breaks_streak(self, make_closed_trades):
        assert current_losing_streak(make_closed_trades(["-1", "-1", "2"])) == 0

    def test_open_trades_are_skipped(self, make_closed_trades, make_draft):
        trades = make_closed_trades(["-1", "-2"])
        trades = open_trade(trades, make_draft(10))
        assert current_losing_streak(trades) == 2

    def test_longest_streak(self, make_closed_trades):
        trades = make_closed_trades(["-1", "-1", "-1", "4", "-2", "3", "-1"])
        assert longest_losing_streak(trades) == 3
        assert current_losing_streak(trades) == 1
