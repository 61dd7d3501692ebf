"""Trade list filtering.

A :class:`FilterSpec` is the ephemeral filter state of a trade list.
The trade-id selector takes precedence: when it is non-empty, the date,
asset and outcome fields are ignored.  A selector that cannot be parsed
matches nothing (fail closed).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from trade_ledger.core.enums import PnlOutcome
from trade_ledger.core.errors import ParseError

from .record import Trade

logger = logging.getLogger(__name__)

# Optional sign and leading digits; anything after the digits is ignored.
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class FilterSpec:
    """Filter state for a trade list.  Defaults match everything."""

    start_date: date | None = None
    end_date: date | None = None
    asset: str = ""
    outcome: PnlOutcome = PnlOutcome.ALL
    trade_id: str = ""

    @property
    def is_active(self) -> bool:
        return self != FilterSpec()


def _parse_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ParseError(f"not an integer: {text!r}")
    return int(match.group(1))


def parse_id_selector(text: str) -> tuple[int, int]:
    """Parse ``"5"`` or ``"3-10"`` into an inclusive id range.

    Text containing ``-`` is always a range built from the first two
    parts; anything after a second dash is ignored.

    Raises
    ------
    ParseError
        If a bound is not an integer or the range is descending.
    """
    selector = text.strip()
    if "-" in selector:
        parts = selector.split("-")
        start, end = _parse_int(parts[0]), _parse_int(parts[1])
        if start > end:
            raise ParseError(f"descending id range: {selector!r}")
        return start, end
    single = _parse_int(selector)
    return single, single


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, _END_OF_DAY, tzinfo=timezone.utc)


def matches_outcome(trade: Trade, outcome: PnlOutcome) -> bool:
    """``win`` needs pnl > 0, ``loss`` needs pnl <= 0; no pnl fails both."""
    if outcome == PnlOutcome.WIN:
        return trade.pnl is not None and trade.pnl > 0
    if outcome == PnlOutcome.LOSS:
        return trade.pnl is not None and trade.pnl <= 0
    return True


def apply_filters(trades: Iterable[Trade], spec: FilterSpec) -> list[Trade]:
    """Return the trades matching *spec*, preserving input order."""
    trades = list(trades)

    selector = spec.trade_id.strip()
    if selector:
        try:
            start_id, end_id = parse_id_selector(selector)
        except ParseError as exc:
            logger.debug("Trade id filter rejected: %s", exc)
            return []
        return [t for t in trades if start_id <= t.id <= end_id]

    start = _day_start(spec.start_date) if spec.start_date else None
    end = _day_end(spec.end_date) if spec.end_date else None
    asset = spec.asset.lower()

    result = []
    for trade in trades:
        if start is not None and trade.date < start:
            continue
        if end is not None and trade.date > end:
            continue
        if asset and asset not in trade.asset.lower():
            continue
        if not matches_outcome(trade, spec.outcome):
            continue
        result.append(trade)
    return result
