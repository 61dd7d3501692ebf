"""Trade book: the only legal mutation paths for the trade collection.

Every function takes the current trades as a tuple and returns a new
tuple; nothing is modified in place.  After each change the whole
collection is stably re-sorted by date and renumbered 1..N, so the id
of a trade always equals its chronological position.

Usage::

    trades = open_trade((), draft)
    trades = complete_trade(trades, other_draft)
    trades = update_trade(trades, replace(trades[0], asset="ETH"))
    trades = delete_trade(trades, 1)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import replace
from functools import cmp_to_key

from trade_ledger.core.enums import TradeStatus
from trade_ledger.core.errors import TradeNotFoundError

from .record import Trade, TradeDraft, compute_pnl

logger = logging.getLogger(__name__)

Trades = tuple[Trade, ...]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def next_id(trades: Iterable[Trade]) -> int:
    """Max existing id + 1, or 1 for an empty collection."""
    return max((t.id for t in trades), default=0) + 1


def renumber(trades: Iterable[Trade]) -> Trades:
    """Stable sort by date ascending, then assign ids 1..N in that order."""
    ordered = sorted(trades, key=lambda t: t.date)
    return tuple(t.with_id(i) for i, t in enumerate(ordered, start=1))


# ------------------------------------------------------------------ #
# Mutations                                                            #
# ------------------------------------------------------------------ #

def open_trade(trades: Trades, draft: TradeDraft) -> Trades:
    """Record a position that has not been exited yet."""
    trade = Trade.from_draft(
        draft, trade_id=next_id(trades), status=TradeStatus.OPEN, pnl=None,
    )
    logger.debug("Opening trade %s %s @ %s", trade.direction.value, trade.asset, trade.entry_price)
    return renumber((*trades, trade))


def complete_trade(trades: Trades, draft: TradeDraft) -> Trades:
    """Record a finished position; pnl is derived from entry/exit/size."""
    pnl = compute_pnl(draft.direction, draft.entry_price, draft.exit_price, draft.size)
    trade = Trade.from_draft(
        draft, trade_id=next_id(trades), status=TradeStatus.CLOSED, pnl=pnl,
    )
    logger.debug("Completing trade %s %s pnl=%s", trade.direction.value, trade.asset, pnl)
    return renumber((*trades, trade))


def update_trade(trades: Trades, updated: Trade) -> Trades:
    """Replace the trade whose id matches ``updated.id``.

    Changing the date may shift the ids of other trades.  An open trade
    never carries a pnl, whatever the caller supplied.

    Raises
    ------
    TradeNotFoundError
        If no trade has that id.
    """
    if not any(t.id == updated.id for t in trades):
        raise TradeNotFoundError(updated.id)
    if updated.status == TradeStatus.OPEN and updated.pnl is not None:
        updated = replace(updated, pnl=None)
    return renumber(updated if t.id == updated.id else t for t in trades)


def delete_trade(trades: Trades, trade_id: int) -> Trades:
    """Remove a trade; later trades move down to close the gap.

    Raises
    ------
    TradeNotFoundError
        If no trade has that id.
    """
    remaining = [t for t in trades if t.id != trade_id]
    if len(remaining) == len(trades):
        raise TradeNotFoundError(trade_id)
    return renumber(remaining)


def import_trades(trades: Trades, drafts: Iterable[TradeDraft]) -> Trades:
    """Append externally sourced trades as closed positions.

    A pnl supplied by the source is kept; otherwise it is derived the
    same way as :func:`complete_trade`.
    """
    start = next_id(trades)
    imported = []
    for offset, draft in enumerate(drafts):
        pnl = draft.pnl
        if pnl is None:
            pnl = compute_pnl(draft.direction, draft.entry_price, draft.exit_price, draft.size)
        imported.append(Trade.from_draft(
            draft, trade_id=start + offset, status=TradeStatus.CLOSED, pnl=pnl,
        ))
    logger.info("Imported %d trades", len(imported))
    return renumber((*trades, *imported))


# ------------------------------------------------------------------ #
# Lookups                                                              #
# ------------------------------------------------------------------ #

def get_trade(trades: Trades, trade_id: int) -> Trade:
    for trade in trades:
        if trade.id == trade_id:
            return trade
    raise TradeNotFoundError(trade_id)


def unique_assets(trades: Iterable[Trade]) -> list[str]:
    """Distinct non-empty asset symbols, sorted."""
    return sorted({t.asset.strip() for t in trades if t.asset.strip()})


def unique_leverages(trades: Iterable[Trade]) -> list[str]:
    """Distinct leverages, numeric order when both parse (``"3x"`` < ``"10x"``)."""
    values = {t.leverage.strip() for t in trades if t.leverage and t.leverage.strip()}

    def _cmp(a: str, b: str) -> int:
        ma, mb = _LEADING_INT.match(a), _LEADING_INT.match(b)
        if ma and mb:
            diff = int(ma.group(1)) - int(mb.group(1))
            if diff:
                return diff
        return (a > b) - (a < b)

    return sorted(values, key=cmp_to_key(_cmp))

