"""Trade list sorting.

The comparator is chosen by the value type of the sort key:

* datetimes compare by instant
* ``leverage`` compares the leading integer of ``"10x"``-style text
  (unparsable or missing counts as 0)
* other text compares case-insensitively with the active locale's
  collation, falling back to a case-sensitive comparison on ties
* numbers compare numerically; a missing ``pnl`` counts as 0 and other
  missing numbers sort before any value

Python's sort is stable, so ties keep their incoming order, which for
ledger trades is chronological.
"""

from __future__ import annotations

import locale
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from functools import cmp_to_key
from typing import Any

from trade_ledger.core.enums import SortDirection, SortKey
from trade_ledger.core.errors import ValidationError

from .record import Trade

_LEVERAGE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class SortSpec:
    key: SortKey = SortKey.ID
    direction: SortDirection = SortDirection.DESCENDING

    def toggled(self, key: SortKey) -> "SortSpec":
        """Header-click rule: same key ascending flips to descending,
        anything else starts ascending."""
        if self.key == key and self.direction == SortDirection.ASCENDING:
            return replace(self, key=key, direction=SortDirection.DESCENDING)
        return SortSpec(key=key, direction=SortDirection.ASCENDING)

    @classmethod
    def parse(cls, key: str, direction: str = SortDirection.DESCENDING.value) -> "SortSpec":
        """Build a spec from user text, rejecting unknown keys."""
        try:
            return cls(key=SortKey(key), direction=SortDirection(direction))
        except ValueError as exc:
            raise ValidationError(f"Invalid sort {key!r} {direction!r}") from exc


def leverage_value(raw: str | None) -> int:
    """Leading integer of a leverage label: ``"10x"`` → 10, junk → 0."""
    if not raw:
        return 0
    match = _LEVERAGE.match(raw.replace("x", ""))
    return int(match.group(1)) if match else 0


def _sort_value(trade: Trade, key: SortKey) -> Any:
    if key == SortKey.PNL:
        return trade.pnl if trade.pnl is not None else Decimal("0")
    value = getattr(trade, key.value)
    if hasattr(value, "value") and isinstance(value.value, str):
        return value.value  # Enums compare by their label
    return value


def _compare(a: Any, b: Any, key: SortKey) -> int:
    if key == SortKey.LEVERAGE:
        return _sign(leverage_value(a) - leverage_value(b))
    if isinstance(a, datetime) and isinstance(b, datetime):
        return _sign((a - b).total_seconds())
    if isinstance(a, str) and isinstance(b, str):
        folded = locale.strcoll(a.casefold(), b.casefold())
        return _sign(folded or locale.strcoll(a, b))
    if a is None or b is None:
        # Missing values sort first
        return (a is not None) - (b is not None)
    return (a > b) - (a < b)


def _sign(value: float | int) -> int:
    return (value > 0) - (value < 0)


def apply_sort(trades: Iterable[Trade], spec: SortSpec) -> list[Trade]:
    """Return *trades* ordered by *spec*; ties keep their input order."""
    flip = 1 if spec.direction == SortDirection.ASCENDING else -1

    def _cmp(x: Trade, y: Trade) -> int:
        a, b = _sort_value(x, spec.key), _sort_value(y, spec.key)
        return flip * _compare(a, b, spec.key)

    return sorted(trades, key=cmp_to_key(_cmp))
