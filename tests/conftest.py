"""Shared fixtures for the trade-ledger test suite."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from trade_ledger.audit.models import Strategy
from trade_ledger.controller import LedgerController
from trade_ledger.core.enums import TradeDirection
from trade_ledger.core.errors import ExternalCallError
from trade_ledger.ledger.book import import_trades
from trade_ledger.ledger.record import Trade, TradeDraft
from trade_ledger.storage.kv import MemoryKeyValueStore
from trade_ledger.storage.ledger_store import LedgerStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Trade helpers
# ---------------------------------------------------------------------------

def _draft(
    day: int = 0,
    *,
    asset: str = "BTC",
    direction: TradeDirection = TradeDirection.LONG,
    entry: str = "100",
    exit: str | None = None,
    size: str = "1",
    leverage: str | None = None,
    pnl: str | None = None,
    notes: str = "",
) -> TradeDraft:
    return TradeDraft(
        date=BASE_TIME + timedelta(days=day),
        asset=asset,
        direction=direction,
        entry_price=Decimal(entry),
        size=Decimal(size),
        exit_price=Decimal(exit) if exit is not None else None,
        leverage=leverage,
        pnl=Decimal(pnl) if pnl is not None else None,
        notes=notes,
    )


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def make_draft():
    """Factory: ``make_draft(day, asset=..., entry=..., exit=...)``."""
    return _draft


@pytest.fixture
def make_closed_trades():
    """Factory: closed trades on consecutive days with the given pnls."""

    def _make(pnls: Sequence[str], *, start_day: int = 0) -> tuple[Trade, ...]:
        drafts = [_draft(start_day + i, pnl=p) for i, p in enumerate(pnls)]
        return import_trades((), drafts)

    return _make


# ---------------------------------------------------------------------------
# Audit provider double
# ---------------------------------------------------------------------------

class FakeAuditProvider:
    """Records calls and returns canned text (or raises)."""

    def __init__(self, result: str = "Looks disciplined.", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[tuple[Trade, ...], Strategy | None]] = []

    async def run_audit(self, trades, strategy):
        self.calls.append((tuple(trades), strategy))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_provider() -> FakeAuditProvider:
    return FakeAuditProvider()


@pytest.fixture
def failing_provider() -> FakeAuditProvider:
    return FakeAuditProvider(error=ExternalCallError("provider down"))


# ---------------------------------------------------------------------------
# Storage & controller
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def ledger_store(memory_kv) -> LedgerStore:
    return LedgerStore(memory_kv)


@pytest.fixture
def controller(ledger_store, fake_provider) -> LedgerController:
    return LedgerController(ledger_store, provider=fake_provider)
