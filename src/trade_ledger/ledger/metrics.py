"""Performance metrics over a trade collection.

Only closed trades with a realised pnl contribute to P&L statistics.
All functions are pure; the trade view memoizes them per trade set.

Example::

    m = compute_metrics(trades, Decimal("1000"))
    print(m.total_pnl, m.win_rate, m.profit_factor, m.current_capital)
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from trade_ledger.core.enums import TradeStatus

from .record import Trade

_ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerMetrics:
    """Aggregate performance snapshot.  Never persisted."""

    total_trades: int
    closed_trades: int
    open_trades: int
    wins: int
    losses: int
    total_pnl: Decimal
    win_rate: float  # Fraction 0..1
    profit_factor: float  # math.inf when there are gains and no losses
    gross_profit: Decimal
    gross_loss: Decimal  # Absolute value
    average_win: Decimal
    average_loss: Decimal  # Negative or zero
    largest_win: Decimal
    largest_loss: Decimal
    initial_capital: Decimal
    current_capital: Decimal
    current_losing_streak: int
    longest_losing_streak: int

    @property
    def return_pct(self) -> float:
        """Total pnl relative to initial capital, 0 without capital."""
        if self.initial_capital <= 0:
            return 0.0
        return float(self.total_pnl / self.initial_capital)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_trades": self.total_trades,
            "closed_trades": self.closed_trades,
            "open_trades": self.open_trades,
            "wins": self.wins,
            "losses": self.losses,
            "total_pnl": str(self.total_pnl),
            "win_rate": self.win_rate,
            "profit_factor": self.profit_factor,
            "gross_profit": str(self.gross_profit),
            "gross_loss": str(self.gross_loss),
            "average_win": str(self.average_win),
            "average_loss": str(self.average_loss),
            "largest_win": str(self.largest_win),
            "largest_loss": str(self.largest_loss),
            "initial_capital": str(self.initial_capital),
            "current_capital": str(self.current_capital),
            "return_pct": self.return_pct,
            "current_losing_streak": self.current_losing_streak,
            "longest_losing_streak": self.longest_losing_streak,
        }


def realised(trades: Iterable[Trade]) -> list[Trade]:
    """Closed trades with a defined pnl, in the given order."""
    return [t for t in trades if t.status == TradeStatus.CLOSED and t.pnl is not None]


def profit_factor(gross_profit: Decimal, gross_loss: Decimal) -> float:
    """Gross gains over absolute gross losses.

    ``math.inf`` when there are gains but no losses, 0 without gains.
    """
    if gross_profit <= 0:
        return 0.0
    if gross_loss == 0:
        return math.inf
    return float(gross_profit / gross_loss)


def current_losing_streak(trades: Sequence[Trade]) -> int:
    """Consecutive most-recent non-winning closed trades.

    Walks backwards by id.  Open trades and trades without a pnl are
    skipped without breaking the streak; the first win stops the walk.
    """
    streak = 0
    for trade in sorted(trades, key=lambda t: t.id, reverse=True):
        if trade.status != TradeStatus.CLOSED or trade.pnl is None:
            continue
        if trade.pnl > 0:
            break
        streak += 1
    return streak


def longest_losing_streak(trades: Sequence[Trade]) -> int:
    """Longest run of non-winning closed trades, in id order."""
    longest = run = 0
    for trade in realised(sorted(trades, key=lambda t: t.id)):
        if trade.is_win:
            run = 0
        else:
            run += 1
            longest = max(longest, run)
    return longest


def compute_metrics(
    trades: Sequence[Trade],
    initial_capital: Decimal = _ZERO,
) -> LedgerMetrics:
    """Compute aggregate statistics for a trade collection.

    Parameters
    ----------
    trades : Sequence[Trade]
        Any subset of the ledger (full set or a filtered view).
    initial_capital : Decimal
        Starting account balance; ``current_capital`` adds total pnl.
    """
    closed = realised(trades)
    pnls = [t.pnl for t in closed if t.pnl is not None]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p <= 0]
    negative = [p for p in pnls if p < 0]

    total_pnl = sum(pnls, _ZERO)
    gross_profit = sum(wins, _ZERO)
    gross_loss = abs(sum(negative, _ZERO))

    return LedgerMetrics(
        total_trades=len(trades),
        closed_trades=sum(1 for t in trades if t.status == TradeStatus.CLOSED),
        open_trades=sum(1 for t in trades if t.status == TradeStatus.OPEN),
        wins=len(wins),
        losses=len(losses),
        total_pnl=total_pnl,
        win_rate=len(wins) / len(pnls) if pnls else 0.0,
        profit_factor=profit_factor(gross_profit, gross_loss),
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        average_win=gross_profit / len(wins) if wins else _ZERO,
        average_loss=sum(negative, _ZERO) / len(negative) if negative else _ZERO,
        largest_win=max(wins) if wins else _ZERO,
        largest_loss=min(negative) if negative else _ZERO,
        initial_capital=initial_capital,
        current_capital=initial_capital + total_pnl,
        current_losing_streak=current_losing_streak(trades),
        longest_losing_streak=longest_losing_streak(trades),
    )
