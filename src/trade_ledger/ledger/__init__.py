"""Trade Ledger Analytics Engine.

Owns the trade collection's identity and ordering rules, derives
performance metrics, and drives the filtered/sorted/paginated trade
list and the self-review prompts.

Key components
--------------
**Records & mutations**

Trade             One logged position (immutable)
TradeDraft        User input for a new trade, before an id is assigned
open_trade / complete_trade / update_trade / delete_trade / import_trades
                  The only mutation paths; each re-sorts and renumbers

**Analytics**

LedgerMetrics     Aggregate P&L, win rate, profit factor, capital
compute_metrics   Metrics for any subset of the ledger

**Trade list**

FilterSpec        Date range / asset / outcome / id-selector filter
SortSpec          Sort key + direction with header-click toggling
Page              One page of the list with "Showing X to Y of Z" bounds
TradeView         Filter → sort → paginate pipeline with memoization

**Review prompts**

ReviewPromptMachine   Losing-streak and milestone audit suggestions
ReminderSettings      User-editable reminder preferences

**Export**

TradeExporter     CSV/JSON trade export and periodic reports
"""

from .record import Trade, TradeDraft, compute_pnl
from .book import (
    Trades,
    complete_trade,
    delete_trade,
    get_trade,
    import_trades,
    open_trade,
    renumber,
    unique_assets,
    unique_leverages,
    update_trade,
)
from .metrics import LedgerMetrics, compute_metrics, current_losing_streak
from .filters import FilterSpec, apply_filters, parse_id_selector
from .sorting import SortSpec, apply_sort
from .pagination import Page, paginate
from .review import ReminderSettings, ReviewPrompt, ReviewPromptMachine, ReviewPromptState
from .view import TradeView, TradeViewResult
from .export import TradeExporter

__all__ = [
    "Trade",
    "TradeDraft",
    "Trades",
    "compute_pnl",
    "open_trade",
    "complete_trade",
    "update_trade",
    "delete_trade",
    "import_trades",
    "get_trade",
    "renumber",
    "unique_assets",
    "unique_leverages",
    "LedgerMetrics",
    "compute_metrics",
    "current_losing_streak",
    "FilterSpec",
    "apply_filters",
    "parse_id_selector",
    "SortSpec",
    "apply_sort",
    "Page",
    "paginate",
    "ReminderSettings",
    "ReviewPrompt",
    "ReviewPromptMachine",
    "ReviewPromptState",
    "TradeView",
    "TradeViewResult",
    "TradeExporter",
]
