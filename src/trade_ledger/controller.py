"""Ledger controller: single owner of the application state.

:class:`LedgerController` holds an immutable :class:`LedgerState`,
routes every change through the pure ledger functions, persists the
affected keys (best-effort) and feeds each trade-collection change to
the review-prompt state machine.

Usage::

    controller = LedgerController.from_settings(load_settings("ledger.toml"))
    prompt = controller.complete_trade(draft)
    if prompt is not None:
        open_audit = controller.respond_to_prompt(PromptResponse.DISMISS)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from trade_ledger.audit.models import Audit, AuditParameters, Strategy
from trade_ledger.audit.provider import AnthropicAuditProvider, AuditProvider
from trade_ledger.audit.service import run_audit
from trade_ledger.backup import BackupBundle, export_backup
from trade_ledger.core.config import ReviewConfig, Settings, ViewConfig
from trade_ledger.core.enums import PromptResponse, StorageKey
from trade_ledger.core.errors import ExternalCallError, StrategyNotFoundError
from trade_ledger.ledger import book
from trade_ledger.ledger.book import Trades
from trade_ledger.ledger.metrics import LedgerMetrics
from trade_ledger.ledger.record import Trade, TradeDraft, to_decimal
from trade_ledger.ledger.review import (
    ReminderSettings,
    ReviewPrompt,
    ReviewPromptMachine,
    ReviewPromptState,
)
from trade_ledger.ledger.sorting import SortSpec
from trade_ledger.ledger.view import TradeView, TradeViewResult, cached_metrics
from trade_ledger.storage.kv import JsonFileKeyValueStore, KeyValueStore
from trade_ledger.storage.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerState:
    """Everything the ledger persists, as one immutable value."""

    trades: Trades = ()
    initial_capital: Decimal = Decimal("0")
    audits: tuple[Audit, ...] = ()  # Newest first
    strategies: tuple[Strategy, ...] = ()
    active_strategy_id: str | None = None
    settings: ReminderSettings = field(default_factory=ReminderSettings)

    @property
    def active_strategy(self) -> Strategy | None:
        for strategy in self.strategies:
            if strategy.id == self.active_strategy_id:
                return strategy
        return None


class LedgerController:
    """Owns :class:`LedgerState` and applies every change to it.

    Parameters
    ----------
    store : LedgerStore
        Persistence codec; state is loaded from it on construction.
    review : ReviewConfig | None
        Review-prompt thresholds and reminder defaults.
    view : ViewConfig | None
        Page size and initial sort of the trade list.
    provider : AuditProvider | None
        AI audit backend.  Required only for :meth:`run_audit`.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        review: ReviewConfig | None = None,
        view: ViewConfig | None = None,
        provider: AuditProvider | None = None,
    ) -> None:
        review = review or ReviewConfig()
        view = view or ViewConfig()
        self._store = store
        self._provider = provider

        trades = store.load_trades()
        self._state = LedgerState(
            trades=trades,
            initial_capital=store.load_initial_capital(),
            audits=store.load_audits(),
            strategies=store.load_strategies(),
            active_strategy_id=store.load_active_strategy_id(),
            settings=store.load_settings(),
        )

        # Seeded with the loaded count so start-up never prompts
        self._machine = ReviewPromptMachine(
            ReviewPromptState(
                dismissed_streak_audit_until=store.load_dismissed_until(),
                previous_count=len(trades),
            ),
            streak_threshold=review.streak_threshold,
            dismiss_window=review.dismiss_window,
        )
        self._saved_watermark = self._machine.state.dismissed_streak_audit_until

        self._view = TradeView(
            page_size=view.page_size,
            sort=SortSpec(key=view.sort_key, direction=view.sort_direction),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        kv: KeyValueStore | None = None,
        provider: AuditProvider | None = None,
    ) -> "LedgerController":
        """Build a controller wired to the configured store and provider."""
        review = settings.review
        defaults = ReminderSettings(
            audit_reminders_enabled=review.audit_reminders_enabled,
            audit_milestone_frequency=review.milestone_frequency,
        )
        store = LedgerStore(
            kv if kv is not None else JsonFileKeyValueStore(settings.storage.path),
            default_settings=defaults,
        )
        if provider is None:
            provider = AnthropicAuditProvider(
                api_key_env=settings.audit.api_key_env,
                model=settings.audit.model,
                max_tokens=settings.audit.max_tokens,
            )
        return cls(store, review=review, view=settings.view, provider=provider)

    # ------------------------------------------------------------------ #
    # Read access                                                          #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def trades(self) -> Trades:
        return self._state.trades

    @property
    def view(self) -> TradeView:
        return self._view

    @property
    def review(self) -> ReviewPromptMachine:
        return self._machine

    @property
    def pending_prompt(self) -> ReviewPrompt | None:
        return self._machine.pending

    def metrics(self) -> LedgerMetrics:
        """Dashboard totals over the whole ledger."""
        return cached_metrics(self._state.trades, self._state.initial_capital)

    def render(self) -> TradeViewResult:
        return self._view.render(self._state.trades)

    def unique_assets(self) -> list[str]:
        return book.unique_assets(self._state.trades)

    def unique_leverages(self) -> list[str]:
        return book.unique_leverages(self._state.trades)

    # ------------------------------------------------------------------ #
    # Trade mutations                                                      #
    # ------------------------------------------------------------------ #

    def open_trade(self, draft: TradeDraft) -> ReviewPrompt | None:
        return self._set_trades(book.open_trade(self._state.trades, draft))

    def complete_trade(self, draft: TradeDraft) -> ReviewPrompt | None:
        return self._set_trades(book.complete_trade(self._state.trades, draft))

    def update_trade(self, trade: Trade) -> ReviewPrompt | None:
        return self._set_trades(book.update_trade(self._state.trades, trade))

    def delete_trade(self, trade_id: int) -> ReviewPrompt | None:
        return self._set_trades(book.delete_trade(self._state.trades, trade_id))

    def import_trades(self, drafts: Iterable[TradeDraft]) -> ReviewPrompt | None:
        """Entry point for import adapters: adds *drafts* as closed trades."""
        return self._set_trades(book.import_trades(self._state.trades, drafts))

    def respond_to_prompt(self, response: PromptResponse) -> bool:
        """Answer the pending review prompt.  True means open the audit view."""
        open_audit = self._machine.respond(response)
        self._persist_watermark()
        return open_audit

    # ------------------------------------------------------------------ #
    # Capital & settings                                                   #
    # ------------------------------------------------------------------ #

    def set_initial_capital(self, capital: Any) -> Decimal:
        value = to_decimal(capital, "initialCapital")
        self._state = replace(self._state, initial_capital=value)
        self._store.save_initial_capital(value)
        logger.info("Initial capital set to %s", value)
        return value

    def update_settings(
        self,
        *,
        audit_reminders_enabled: bool | None = None,
        audit_milestone_frequency: int | None = None,
    ) -> ReminderSettings:
        """Edit reminder preferences; a frequency below 1 is stored as 1."""
        current = self._state.settings
        settings = ReminderSettings(
            audit_reminders_enabled=(
                current.audit_reminders_enabled
                if audit_reminders_enabled is None
                else audit_reminders_enabled
            ),
            audit_milestone_frequency=(
                current.audit_milestone_frequency
                if audit_milestone_frequency is None
                else max(1, audit_milestone_frequency)
            ),
        )
        self._state = replace(self._state, settings=settings)
        self._store.save_settings(settings)
        return settings

    # ------------------------------------------------------------------ #
    # Strategies                                                           #
    # ------------------------------------------------------------------ #

    def save_strategy(self, strategy: Strategy) -> Strategy:
        """Insert or replace (by id) and make it the active strategy."""
        strategies = list(self._state.strategies)
        for i, existing in enumerate(strategies):
            if existing.id == strategy.id:
                strategies[i] = strategy
                break
        else:
            strategies.append(strategy)
        self._state = replace(
            self._state, strategies=tuple(strategies), active_strategy_id=strategy.id,
        )
        self._store.save_strategies(self._state.strategies)
        self._store.save_active_strategy_id(strategy.id)
        logger.info("Saved strategy %r (%s)", strategy.name, strategy.id)
        return strategy

    def delete_strategy(self, strategy_id: str) -> None:
        """Remove a strategy; deleting the active one clears the selection.

        Raises
        ------
        StrategyNotFoundError
            If no strategy has that id.
        """
        remaining = tuple(s for s in self._state.strategies if s.id != strategy_id)
        if len(remaining) == len(self._state.strategies):
            raise StrategyNotFoundError(strategy_id)
        active = self._state.active_strategy_id
        if active == strategy_id:
            active = None
        self._state = replace(self._state, strategies=remaining, active_strategy_id=active)
        self._store.save_strategies(remaining)
        self._store.save_active_strategy_id(active)

    def set_active_strategy(self, strategy_id: str | None) -> Strategy | None:
        """Select the strategy audits are measured against (None clears it)."""
        strategy = None
        if strategy_id is not None:
            strategy = next((s for s in self._state.strategies if s.id == strategy_id), None)
            if strategy is None:
                raise StrategyNotFoundError(strategy_id)
        self._state = replace(self._state, active_strategy_id=strategy_id)
        self._store.save_active_strategy_id(strategy_id)
        return strategy

    # ------------------------------------------------------------------ #
    # Audits                                                               #
    # ------------------------------------------------------------------ #

    async def run_audit(
        self,
        trades: Sequence[Trade] | None = None,
        parameters: AuditParameters | None = None,
        *,
        now: datetime | None = None,
    ) -> Audit:
        """Audit *trades* (default: all) against the active strategy.

        The new record is prepended to the audit history.

        Raises
        ------
        ExternalCallError
            If no provider is configured or the provider fails; the
            audit history is left unchanged.
        """
        if self._provider is None:
            raise ExternalCallError("No audit provider configured")
        selected = tuple(self._state.trades if trades is None else trades)
        audit = await run_audit(
            self._provider, selected, self._state.active_strategy, parameters, now=now,
        )
        self._state = replace(self._state, audits=(audit, *self._state.audits))
        self._store.save_audits(self._state.audits)
        return audit

    # ------------------------------------------------------------------ #
    # Backup & reset                                                       #
    # ------------------------------------------------------------------ #

    def export_backup(self, now: datetime | None = None) -> dict[str, Any]:
        return export_backup(self._state, now)

    def restore_backup(self, bundle: BackupBundle) -> None:
        """Overwrite trades, capital, strategies and active strategy id."""
        trades = bundle.restored_trades()
        self._state = replace(
            self._state,
            trades=trades,
            initial_capital=bundle.capital,
            strategies=tuple(bundle.strategies),
            active_strategy_id=bundle.active_strategy_id or None,
        )
        self._machine.rebase(trades)
        self._view.reset_filters()
        self._store.save_trades(trades)
        self._store.save_initial_capital(self._state.initial_capital)
        self._store.save_strategies(self._state.strategies)
        self._store.save_active_strategy_id(self._state.active_strategy_id)
        logger.info("Restored backup from %s: %d trades", bundle.timestamp, len(trades))

    def delete_all_data(self) -> None:
        """Clear every record; reminder settings are kept."""
        self._state = LedgerState(settings=self._state.settings)
        self._machine.clear_watermark()
        self._machine.rebase(())
        self._view.reset_filters()
        for key in (
            StorageKey.TRADES,
            StorageKey.AUDITS,
            StorageKey.STRATEGIES,
            StorageKey.INITIAL_CAPITAL,
            StorageKey.ACTIVE_STRATEGY_ID,
            StorageKey.DISMISSED_STREAK_AUDIT_UNTIL,
        ):
            self._store.remove(key)
        self._saved_watermark = None
        logger.info("All ledger data deleted")

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _set_trades(self, trades: Trades) -> ReviewPrompt | None:
        self._state = replace(self._state, trades=trades)
        self._store.save_trades(trades)
        prompt = self._machine.observe(trades, self._state.settings)
        self._persist_watermark()
        return prompt

    def _persist_watermark(self) -> None:
        watermark = self._machine.state.dismissed_streak_audit_until
        if watermark != self._saved_watermark:
            self._store.save_dismissed_until(watermark)
            self._saved_watermark = watermark
