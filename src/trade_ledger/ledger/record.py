"""Trade record: the core data model.

A Trade is one logged position, either still open or closed with a
realised P&L.  Records are immutable: every change produces a new
record via :func:`dataclasses.replace`, and the ledger re-derives ids
after each change (see :mod:`trade_ledger.ledger.book`).

All financial fields use ``decimal.Decimal`` built from strings, never
from floats.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from trade_ledger.core.enums import TradeDirection, TradeStatus
from trade_ledger.core.errors import ValidationError
from trade_ledger.core.ids import ensure_utc, format_timestamp, parse_timestamp


def compute_pnl(
    direction: TradeDirection,
    entry_price: Decimal,
    exit_price: Decimal | None,
    size: Decimal,
) -> Decimal:
    """Realised P&L of a completed position.

    Long:  (exit - entry) * size
    Short: (entry - exit) * size

    Returns 0 when there is no exit price.
    """
    if exit_price is None or not exit_price:
        return Decimal("0")
    if direction == TradeDirection.LONG:
        return (exit_price - entry_price) * size
    return (entry_price - exit_price) * size


def to_decimal(value: Any, field_name: str) -> Decimal:
    """Convert user or storage input to Decimal via its string form."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number, got {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class TradeDraft:
    """A trade as entered by the user, before the ledger assigns an id.

    Used as input to open / complete / import operations.  ``pnl`` is
    only honoured by imports; the complete path always derives it.
    """

    date: datetime
    asset: str
    direction: TradeDirection
    entry_price: Decimal
    size: Decimal
    exit_price: Decimal | None = None
    leverage: str | None = None
    pnl: Decimal | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", ensure_utc(self.date))
        _validate_prices(self.entry_price, self.exit_price, self.size)


@dataclass(frozen=True)
class Trade:
    """One logged position.

    ``id`` is the 1-based position of the trade in chronological order.
    It is reassigned on every ledger mutation and is not a stable key.
    """

    id: int
    date: datetime
    asset: str
    direction: TradeDirection
    entry_price: Decimal
    size: Decimal
    status: TradeStatus
    exit_price: Decimal | None = None
    leverage: str | None = None
    pnl: Decimal | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", ensure_utc(self.date))
        _validate_prices(self.entry_price, self.exit_price, self.size)

    # ------------------------------------------------------------------ #
    # Computed properties                                                  #
    # ------------------------------------------------------------------ #

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def is_win(self) -> bool:
        """Strictly positive realised P&L."""
        return self.pnl is not None and self.pnl > 0

    @property
    def is_loss(self) -> bool:
        """Realised P&L defined and not positive (break-even counts)."""
        return self.pnl is not None and self.pnl <= 0

    # ------------------------------------------------------------------ #
    # Construction helpers                                                 #
    # ------------------------------------------------------------------ #

    @classmethod
    def from_draft(
        cls,
        draft: TradeDraft,
        *,
        trade_id: int,
        status: TradeStatus,
        pnl: Decimal | None,
    ) -> "Trade":
        return cls(
            id=trade_id,
            date=draft.date,
            asset=draft.asset,
            direction=draft.direction,
            entry_price=draft.entry_price,
            size=draft.size,
            status=status,
            exit_price=draft.exit_price,
            leverage=draft.leverage,
            pnl=pnl,
            notes=draft.notes,
        )

    def with_id(self, trade_id: int) -> "Trade":
        if trade_id == self.id:
            return self
        return replace(self, id=trade_id)

    # ------------------------------------------------------------------ #
    # Serialisation                                                        #
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Export to a JSON-ready dict (camelCase keys, Decimals as str)."""
        data: dict[str, Any] = {
            "id": self.id,
            "date": format_timestamp(self.date),
            "asset": self.asset,
            "direction": self.direction.value,
            "entryPrice": str(self.entry_price),
            "size": str(self.size),
            "status": self.status.value,
        }
        if self.exit_price is not None:
            data["exitPrice"] = str(self.exit_price)
        if self.leverage is not None:
            data["leverage"] = self.leverage
        if self.pnl is not None:
            data["pnl"] = str(self.pnl)
        if self.notes:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Trade":
        """Rebuild a Trade from :meth:`to_dict` output.

        Missing ``status`` defaults to closed.  Numeric fields may be
        strings or numbers.

        Raises
        ------
        ValidationError
            If a required field is missing or malformed.
        """
        try:
            trade_id = int(d.get("id") or 0)
            raw_date = d["date"]
            date = (
                ensure_utc(raw_date)
                if isinstance(raw_date, datetime)
                else parse_timestamp(str(raw_date))
            )
            direction = _parse_direction(d["direction"])
            status = TradeStatus(str(d.get("status") or TradeStatus.CLOSED.value).lower())
            entry_price = to_decimal(d["entryPrice"], "entryPrice")
            size = to_decimal(d["size"], "size")
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed trade record: {exc}") from exc

        exit_raw = d.get("exitPrice")
        pnl_raw = d.get("pnl")
        leverage = d.get("leverage")
        return cls(
            id=trade_id,
            date=date,
            asset=str(d.get("asset", "")),
            direction=direction,
            entry_price=entry_price,
            size=size,
            status=status,
            exit_price=to_decimal(exit_raw, "exitPrice") if exit_raw not in (None, "") else None,
            leverage=str(leverage) if leverage not in (None, "") else None,
            pnl=to_decimal(pnl_raw, "pnl") if pnl_raw not in (None, "") else None,
            notes=str(d.get("notes") or ""),
        )


def _parse_direction(raw: Any) -> TradeDirection:
    text = str(raw).strip().lower()
    for direction in TradeDirection:
        if direction.value.lower() == text:
            return direction
    raise ValueError(f"unknown direction {raw!r}")


def _validate_prices(
    entry_price: Decimal, exit_price: Decimal | None, size: Decimal
) -> None:
    if entry_price <= 0:
        raise ValidationError(f"Entry price must be positive, got {entry_price}")
    if exit_price is not None and exit_price <= 0:
        raise ValidationError(f"Exit price must be positive, got {exit_price}")
    if size <= 0:
        raise ValidationError(f"Size must be positive, got {size}")
