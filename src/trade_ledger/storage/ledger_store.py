"""Typed load/save of ledger state on top of a :class:`KeyValueStore`.

Loads are tolerant: an absent or malformed value falls back to the
empty/default state and is logged, never raised.  Saves are
best-effort: a failing write is logged at warning level and swallowed
so in-memory operations are never blocked by storage.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

import pydantic

from trade_ledger.audit.models import Audit, Strategy
from trade_ledger.core.enums import StorageKey
from trade_ledger.core.errors import ParseError, ValidationError
from trade_ledger.ledger.book import Trades, renumber
from trade_ledger.ledger.record import Trade, to_decimal
from trade_ledger.ledger.review import ReminderSettings

from .kv import KeyValueStore

logger = logging.getLogger(__name__)


def _decode(key: StorageKey, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"{key.value}: invalid JSON ({exc})") from exc


def _decode_list(key: StorageKey, raw: str) -> list[Any]:
    data = _decode(key, raw)
    if not isinstance(data, list):
        raise ParseError(f"{key.value}: expected a list, got {type(data).__name__}")
    return data


def decode_trades(entries: Iterable[Any]) -> Trades:
    """Rebuild trades from stored dicts.

    Entries without a date are dropped, malformed entries are skipped,
    and the rest are sorted chronologically and renumbered 1..N.
    """
    trades: list[Trade] = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("date"):
            continue
        try:
            trades.append(Trade.from_dict(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed stored trade: %s", exc)
    return renumber(trades)


class LedgerStore:
    """Ledger state codec over a key-value store.

    Parameters
    ----------
    kv : KeyValueStore
        Backing store.
    default_settings : ReminderSettings | None
        Defaults that persisted reminder settings are merged over.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        default_settings: ReminderSettings | None = None,
    ) -> None:
        self._kv = kv
        self._default_settings = default_settings or ReminderSettings()

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    # ------------------------------------------------------------------ #
    # Loads                                                                #
    # ------------------------------------------------------------------ #

    def load_trades(self) -> Trades:
        raw = self._kv.load(StorageKey.TRADES.value)
        if not raw:
            return ()
        try:
            entries = _decode_list(StorageKey.TRADES, raw)
        except ParseError as exc:
            logger.warning("Ignoring stored trades: %s", exc)
            return ()
        trades = decode_trades(entries)
        logger.info("Loaded %d trades", len(trades))
        return trades

    def load_initial_capital(self) -> Decimal:
        raw = self._kv.load(StorageKey.INITIAL_CAPITAL.value)
        if not raw:
            return Decimal("0")
        try:
            return to_decimal(raw, "initialCapital")
        except ValidationError as exc:
            logger.warning("Ignoring stored initial capital: %s", exc)
            return Decimal("0")

    def load_audits(self) -> tuple[Audit, ...]:
        return tuple(self._load_models(StorageKey.AUDITS, Audit))

    def load_strategies(self) -> tuple[Strategy, ...]:
        return tuple(self._load_models(StorageKey.STRATEGIES, Strategy))

    def load_active_strategy_id(self) -> str | None:
        return self._kv.load(StorageKey.ACTIVE_STRATEGY_ID.value) or None

    def load_dismissed_until(self) -> int | None:
        raw = self._kv.load(StorageKey.DISMISSED_STREAK_AUDIT_UNTIL.value)
        if not raw:
            return None
        try:
            return int(raw.strip())
        except ValueError:
            logger.warning("Ignoring stored streak watermark %r", raw)
            return None

    def load_settings(self) -> ReminderSettings:
        raw = self._kv.load(StorageKey.SETTINGS.value)
        if not raw:
            return self._default_settings
        try:
            data = _decode(StorageKey.SETTINGS, raw)
        except ParseError as exc:
            logger.warning("Ignoring stored settings: %s", exc)
            return self._default_settings
        if not isinstance(data, dict):
            return self._default_settings
        return ReminderSettings.from_dict(data, defaults=self._default_settings)

    # ------------------------------------------------------------------ #
    # Saves (best-effort)                                                  #
    # ------------------------------------------------------------------ #

    def save_trades(self, trades: Sequence[Trade]) -> None:
        self._write(StorageKey.TRADES, json.dumps([t.to_dict() for t in trades]))

    def save_initial_capital(self, capital: Decimal) -> None:
        self._write(StorageKey.INITIAL_CAPITAL, str(capital))

    def save_audits(self, audits: Sequence[Audit]) -> None:
        self._write(StorageKey.AUDITS, _dump_models(audits))

    def save_strategies(self, strategies: Sequence[Strategy]) -> None:
        self._write(StorageKey.STRATEGIES, _dump_models(strategies))

    def save_active_strategy_id(self, strategy_id: str | None) -> None:
        if strategy_id:
            self._write(StorageKey.ACTIVE_STRATEGY_ID, strategy_id)
        else:
            self._remove(StorageKey.ACTIVE_STRATEGY_ID)

    def save_dismissed_until(self, watermark: int | None) -> None:
        if watermark is not None:
            self._write(StorageKey.DISMISSED_STREAK_AUDIT_UNTIL, str(watermark))
        else:
            self._remove(StorageKey.DISMISSED_STREAK_AUDIT_UNTIL)

    def save_settings(self, settings: ReminderSettings) -> None:
        self._write(StorageKey.SETTINGS, json.dumps(settings.to_dict()))

    def remove(self, key: StorageKey) -> None:
        self._remove(key)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _load_models(self, key: StorageKey, model: type[pydantic.BaseModel]) -> list[Any]:
        raw = self._kv.load(key.value)
        if not raw:
            return []
        try:
            entries = _decode_list(key, raw)
        except ParseError as exc:
            logger.warning("Ignoring stored %s: %s", key.value, exc)
            return []
        items = []
        for entry in entries:
            try:
                items.append(model.model_validate(entry))
            except pydantic.ValidationError as exc:
                logger.warning("Skipping malformed %s entry: %s", key.value, exc)
        return items

    def _write(self, key: StorageKey, raw: str) -> None:
        try:
            self._kv.save(key.value, raw)
        except Exception:
            logger.warning("Failed to save %s", key.value, exc_info=True)

    def _remove(self, key: StorageKey) -> None:
        try:
            self._kv.remove(key.value)
        except Exception:
            logger.warning("Failed to remove %s", key.value, exc_info=True)


def _dump_models(items: Sequence[pydantic.BaseModel]) -> str:
    return json.dumps([item.model_dump(by_alias=True) for item in items])
