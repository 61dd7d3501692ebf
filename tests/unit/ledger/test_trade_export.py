"""Tests for TradeExporter: CSV/JSON export and periodic reports."""

import csv
import io
import json

import pytest

from trade_ledger.ledger.book import open_trade
from trade_ledger.ledger.export import TradeExporter


@pytest.fixture
def exporter():
    return TradeExporter()


class TestCSVExport:
    def test_header_and_rows(self, exporter, make_closed_trades):
        csv_str = exporter.to_csv(make_closed_trades(["10", "-5", "2.5"]))
        reader = csv.DictReader(io.StringIO(csv_str))
        assert "entry_price" in reader.fieldnames
        assert "pnl" in reader.fieldnames
        rows = list(reader)
        assert len(rows) == 3
        assert rows[2]["pnl"] == "2.5"
        assert rows[0]["direction"] == "Long"

    def test_open_trade_has_blank_pnl(self, exporter, make_draft):
        csv_str = exporter.to_csv(open_trade((), make_draft()))
        (row,) = csv.DictReader(io.StringIO(csv_str))
        assert row["pnl"] == ""
        assert row["exit_price"] == ""
        assert row["status"] == "open"

    def test_column_selection(self, exporter, make_closed_trades):
        csv_str = exporter.to_csv(make_closed_trades(["1"]), columns=["id", "pnl"])
        assert csv_str.splitlines()[0] == "id,pnl"


class TestJSONExport:
    def test_valid_json(self, exporter, make_closed_trades):
        data = json.loads(exporter.to_json(make_closed_trades(["10", "-5"])))
        assert [row["id"] for row in data] == [1, 2]
        assert data[1]["pnl"] == "-5"
        assert data[0]["date"] == "2024-01-01T12:00:00.000Z"


class TestPeriodicReport:
    def test_daily_buckets(self, exporter, make_closed_trades):
        report = exporter.periodic_report(make_closed_trades(["10", "-5", "3"]), period="daily")
        assert [b["period_key"] for b in report["buckets"]] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert report["totals"]["total_pnl"] == "8"
        assert report["totals"]["trades"] == 3

    def test_monthly_groups(self, exporter, make_closed_trades):
        report = exporter.periodic_report(make_closed_trades(["1"] * 40), period="monthly")
        assert [b["period_key"] for b in report["buckets"]] == ["2024-01", "2024-02"]
        assert report["buckets"][0]["trades"] == 31

    def test_weekly_key_format(self, exporter, make_closed_trades):
        report = exporter.periodic_report(make_closed_trades(["1"]), period="weekly")
        assert report["buckets"][0]["period_key"] == "2024-W01"

    def test_open_trades_excluded(self, exporter, make_draft):
        report = exporter.periodic_report(open_trade((), make_draft()))
        assert report["buckets"] == []

    def test_unknown_period(self, exporter):
        with pytest.raises(ValueError):
            exporter.periodic_report((), period="yearly")
