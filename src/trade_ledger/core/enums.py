"""Enumerations used across the trade ledger."""

from enum import Enum


class TradeDirection(str, Enum):
    LONG = "Long"
    SHORT = "Short"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class PnlOutcome(str, Enum):
    """Outcome class used by the trade list filter."""

    ALL = "all"
    WIN = "win"
    LOSS = "loss"


class SortKey(str, Enum):
    """Trade fields the trade list can be sorted by."""

    ID = "id"
    DATE = "date"
    ASSET = "asset"
    DIRECTION = "direction"
    ENTRY_PRICE = "entry_price"
    EXIT_PRICE = "exit_price"
    SIZE = "size"
    LEVERAGE = "leverage"
    STATUS = "status"
    PNL = "pnl"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class ReviewPhase(str, Enum):
    """Phase of the review-prompt state machine."""

    IDLE = "idle"
    STREAK_PROMPT_PENDING = "streak_prompt_pending"
    MILESTONE_PROMPT_PENDING = "milestone_prompt_pending"


class PromptResponse(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    DISMISS = "dismiss"  # Streak prompts only: suppress for the next N trades


class StorageKey(str, Enum):
    """Keys under which ledger state is kept in the key-value store."""

    TRADES = "cryptoTrades"
    INITIAL_CAPITAL = "initialCapital"
    AUDITS = "cryptoAudits"
    STRATEGIES = "tradingStrategies"
    ACTIVE_STRATEGY_ID = "activeStrategyId"
    DISMISSED_STREAK_AUDIT_UNTIL = "dismissedStreakAuditUntil"
    SETTINGS = "tradingJournalSettings"
