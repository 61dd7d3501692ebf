"""Backup bundle: full ledger snapshot for export and restore.

A bundle is one JSON document::

    {
      "trades": [...],
      "initialCapital": 1000,
      "strategies": [...],
      "activeStrategyId": "...",     # optional
      "timestamp": "2024-05-01T12:00:00.000Z"
    }

Restoring replaces trades, capital, strategies and the active strategy
id; audits and reminder settings are not part of a bundle.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator

from trade_ledger.audit.models import Strategy
from trade_ledger.core.errors import ValidationError
from trade_ledger.core.ids import format_timestamp, utc_now
from trade_ledger.ledger.book import Trades
from trade_ledger.ledger.record import to_decimal
from trade_ledger.storage.ledger_store import decode_trades

if TYPE_CHECKING:
    from trade_ledger.controller import LedgerState

logger = logging.getLogger(__name__)


class BackupBundle(BaseModel):
    """A validated backup document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    trades: list[Any]
    initial_capital: StrictInt | StrictFloat = Field(alias="initialCapital")
    strategies: list[Strategy]
    active_strategy_id: str | None = Field(default=None, alias="activeStrategyId")
    timestamp: StrictStr

    @field_validator("initial_capital")
    @classmethod
    def _finite(cls, value: int | float) -> int | float:
        if not math.isfinite(value):
            raise ValueError("initialCapital must be finite")
        return value

    @property
    def capital(self) -> Decimal:
        return to_decimal(self.initial_capital, "initialCapital")

    def restored_trades(self) -> Trades:
        """Trades sorted by date and renumbered 1..N."""
        return decode_trades(self.trades)


def _json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def export_backup(state: LedgerState, now: datetime | None = None) -> dict[str, Any]:
    """Snapshot *state* as a JSON-ready bundle dict."""
    bundle: dict[str, Any] = {
        "trades": [t.to_dict() for t in state.trades],
        "initialCapital": _json_number(state.initial_capital),
        "strategies": [s.model_dump(by_alias=True) for s in state.strategies],
        "timestamp": format_timestamp(now or utc_now()),
    }
    if state.active_strategy_id:
        bundle["activeStrategyId"] = state.active_strategy_id
    return bundle


def dumps_backup(state: LedgerState, now: datetime | None = None) -> str:
    return json.dumps(export_backup(state, now), indent=2)


def parse_backup(raw: str | bytes | dict[str, Any]) -> BackupBundle:
    """Decode and validate a backup document.

    Raises
    ------
    ValidationError
        If the text is not JSON, or ``trades``/``strategies`` are not
        arrays, ``initialCapital`` is not a number, or ``timestamp`` is
        not a string.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError(f"Backup is not valid JSON: {exc}") from exc
    else:
        data = raw

    if not isinstance(data, dict):
        raise ValidationError("Invalid backup file format. Missing required fields.")
    try:
        bundle = BackupBundle.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Invalid backup file format. Missing required fields. ({exc.error_count()} errors)"
        ) from exc
    logger.debug("Parsed backup from %s with %d trades", bundle.timestamp, len(bundle.trades))
    return bundle
