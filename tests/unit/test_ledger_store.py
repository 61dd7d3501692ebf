"""Tests for LedgerStore: tolerant loads and best-effort saves."""

import json
import logging
from decimal import Decimal

from trade_ledger.audit.models import Audit, AuditParameters, Strategy
from trade_ledger.core.enums import StorageKey, TradeStatus
from trade_ledger.ledger.review import ReminderSettings
from trade_ledger.storage.kv import MemoryKeyValueStore
from trade_ledger.storage.ledger_store import LedgerStore


class BrokenKeyValueStore(MemoryKeyValueStore):
    def save(self, key, raw):
        raise OSError("disk full")

    def remove(self, key):
        raise OSError("disk full")


class TestTrades:
    def test_roundtrip(self, ledger_store, make_closed_trades):
        trades = make_closed_trades(["1", "-2"])
        ledger_store.save_trades(trades)
        assert ledger_store.load_trades() == trades

    def test_load_sorts_renumbers_and_defaults_status(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.TRADES.value, json.dumps([
            {"id": 7, "date": "2024-03-02T00:00:00Z", "asset": "B", "direction": "Long",
             "entryPrice": 1, "size": 1, "pnl": 2},
            {"id": 9, "asset": "NO-DATE", "direction": "Long", "entryPrice": 1, "size": 1},
            {"id": 8, "date": "2024-03-01T00:00:00Z", "asset": "A", "direction": "Short",
             "entryPrice": 1, "size": 1, "status": "open"},
            {"id": 3, "date": "2024-03-03T00:00:00Z", "asset": "BAD", "direction": "Sideways",
             "entryPrice": 1, "size": 1},
        ]))
        trades = ledger_store.load_trades()
        assert [(t.id, t.asset) for t in trades] == [(1, "A"), (2, "B")]
        assert trades[1].status == TradeStatus.CLOSED

    def test_malformed_json_loads_empty(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.TRADES.value, "{oops")
        assert ledger_store.load_trades() == ()

    def test_non_list_loads_empty(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.TRADES.value, '{"a": 1}')
        assert ledger_store.load_trades() == ()


class TestScalars:
    def test_capital(self, memory_kv, ledger_store):
        assert ledger_store.load_initial_capital() == 0
        ledger_store.save_initial_capital(Decimal("1500.50"))
        assert memory_kv.load(StorageKey.INITIAL_CAPITAL.value) == "1500.50"
        assert ledger_store.load_initial_capital() == Decimal("1500.50")

    def test_bad_capital_defaults_to_zero(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.INITIAL_CAPITAL.value, "lots")
        assert ledger_store.load_initial_capital() == 0

    def test_watermark(self, memory_kv, ledger_store):
        ledger_store.save_dismissed_until(23)
        assert ledger_store.load_dismissed_until() == 23
        ledger_store.save_dismissed_until(None)
        assert memory_kv.load(StorageKey.DISMISSED_STREAK_AUDIT_UNTIL.value) is None

    def test_bad_watermark_ignored(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.DISMISSED_STREAK_AUDIT_UNTIL.value, "soon")
        assert ledger_store.load_dismissed_until() is None

    def test_active_strategy_removed_when_none(self, memory_kv, ledger_store):
        ledger_store.save_active_strategy_id("abc")
        assert ledger_store.load_active_strategy_id() == "abc"
        ledger_store.save_active_strategy_id(None)
        assert StorageKey.ACTIVE_STRATEGY_ID.value not in memory_kv.items


class TestModels:
    def test_strategies_roundtrip(self, ledger_store):
        strategy = Strategy(id="s1", name="Breakout", rules=["Wait for close"])
        ledger_store.save_strategies([strategy])
        assert ledger_store.load_strategies() == (strategy,)

    def test_audits_use_camel_case(self, memory_kv, ledger_store):
        audit = Audit(id="t", date="t", parameters=AuditParameters(strategy_name="X"), result="ok")
        ledger_store.save_audits([audit])
        stored = json.loads(memory_kv.load(StorageKey.AUDITS.value))
        assert stored[0]["parameters"]["strategyName"] == "X"
        assert ledger_store.load_audits() == (audit,)

    def test_malformed_entries_skipped(self, memory_kv, ledger_store):
        memory_kv.save(StorageKey.STRATEGIES.value, json.dumps([{"id": "x"}, {"name": "Ok"}]))
        loaded = ledger_store.load_strategies()
        assert [s.name for s in loaded] == ["Ok"]


class TestSettings:
    def test_merge_over_configured_defaults(self, memory_kv):
        store = LedgerStore(memory_kv, default_settings=ReminderSettings(audit_milestone_frequency=5))
        memory_kv.save(StorageKey.SETTINGS.value, json.dumps({"auditRemindersEnabled": False}))
        assert store.load_settings() == ReminderSettings(False, 5)

    def test_absent_uses_defaults(self, ledger_store):
        assert ledger_store.load_settings() == ReminderSettings()


class TestBestEffortSaves:
    def test_save_failures_are_logged_not_raised(self, caplog, make_closed_trades):
        store = LedgerStore(BrokenKeyValueStore())
        with caplog.at_level(logging.WARNING):
            store.save_trades(make_closed_trades(["1"]))
            store.save_dismissed_until(None)
        assert "Failed to save cryptoTrades" in caplog.text
        assert "Failed to remove dismissedStreakAuditUntil" in caplog.text
