"""Trade export: CSV/JSON output and periodic summaries.

Exports ledger trades in standard formats for spreadsheets and external
analysis.  Monetary values keep their full Decimal precision as text.

Usage::

    exporter = TradeExporter()
    csv_str = exporter.to_csv(trades)
    json_str = exporter.to_json(trades)
    report = exporter.periodic_report(trades, period="monthly")
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from trade_ledger.core.ids import format_timestamp

from .metrics import compute_metrics
from .record import Trade

logger = logging.getLogger(__name__)

# Default CSV columns
_CSV_COLUMNS = [
    "id",
    "date",
    "asset",
    "direction",
    "status",
    "entry_price",
    "exit_price",
    "size",
    "leverage",
    "pnl",
    "notes",
]

_PERIODS = ("daily", "weekly", "monthly")


class TradeExporter:
    """Export trades to CSV/JSON and build per-period summaries."""

    # ------------------------------------------------------------------ #
    # CSV Export                                                           #
    # ------------------------------------------------------------------ #

    def to_csv(
        self,
        trades: Sequence[Trade],
        *,
        columns: list[str] | None = None,
    ) -> str:
        """Export trades as a CSV string with a header row.

        Parameters
        ----------
        trades : Sequence[Trade]
            Trades to export, in the order given.
        columns : list[str] | None
            Column selection.  Defaults to ``_CSV_COLUMNS``.
        """
        cols = columns or _CSV_COLUMNS
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()

        for trade in trades:
            row = self._trade_to_row(trade)
            writer.writerow({c: row.get(c, "") for c in cols})

        return buf.getvalue()

    # ------------------------------------------------------------------ #
    # JSON Export                                                          #
    # ------------------------------------------------------------------ #

    def to_json(
        self,
        trades: Sequence[Trade],
        *,
        indent: int = 2,
    ) -> str:
        """Export trades as a JSON list of objects."""
        rows = [self._trade_to_row(t) for t in trades]
        return json.dumps(rows, indent=indent)

    # ------------------------------------------------------------------ #
    # Periodic Report                                                      #
    # ------------------------------------------------------------------ #

    def periodic_report(
        self,
        trades: Sequence[Trade],
        *,
        period: str = "monthly",
    ) -> dict[str, Any]:
        """Group realised trades by ``daily``, ``weekly`` or ``monthly`` period.

        Returns
        -------
        dict
            ``period`` : str
            ``buckets`` : list of per-period stats, oldest first
            ``totals`` : summary across all periods
        """
        if period not in _PERIODS:
            raise ValueError(f"period must be one of {_PERIODS}, got {period!r}")

        buckets: dict[str, list[Trade]] = defaultdict(list)
        for trade in trades:
            if trade.pnl is not None and trade.is_closed:
                buckets[self._period_key(trade, period)].append(trade)

        return {
            "period": period,
            "buckets": [
                {"period_key": key, **self._group_stats(buckets[key])}
                for key in sorted(buckets)
            ],
            "totals": self._group_stats([t for group in buckets.values() for t in group]),
        }

    # ------------------------------------------------------------------ #
    # Private helpers                                                      #
    # ------------------------------------------------------------------ #

    def _trade_to_row(self, trade: Trade) -> dict[str, Any]:
        """Convert a Trade to a flat dict for export."""
        return {
            "id": trade.id,
            "date": format_timestamp(trade.date),
            "asset": trade.asset,
            "direction": trade.direction.value,
            "status": trade.status.value,
            "entry_price": str(trade.entry_price),
            "exit_price": str(trade.exit_price) if trade.exit_price is not None else "",
            "size": str(trade.size),
            "leverage": trade.leverage or "",
            "pnl": str(trade.pnl) if trade.pnl is not None else "",
            "notes": trade.notes,
        }

    @staticmethod
    def _period_key(trade: Trade, period: str) -> str:
        ts = trade.date
        if period == "daily":
            return ts.strftime("%Y-%m-%d")
        if period == "weekly":
            year, week, _ = ts.isocalendar()
            return f"{year}-W{week:02d}"
        return ts.strftime("%Y-%m")

    @staticmethod
    def _group_stats(group: list[Trade]) -> dict[str, Any]:
        m = compute_metrics(group)
        return {
            "trades": m.closed_trades,
            "wins": m.wins,
            "losses": m.losses,
            "win_rate": round(m.win_rate, 4),
            "total_pnl": str(m.total_pnl),
            "profit_factor": m.profit_factor,
            "best_trade": str(m.largest_win),
            "worst_trade": str(m.largest_loss),
        }
