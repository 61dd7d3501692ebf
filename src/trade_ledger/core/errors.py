"""Custom exception hierarchy for the trade ledger."""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


# --- Configuration ---
class ConfigError(LedgerError):
    """Invalid or missing configuration."""


# --- Input ---
class ParseError(LedgerError):
    """Malformed filter text or persisted value.

    Never reaches callers of the ledger: it is caught where it is raised
    and turned into an empty or default result.
    """


class ValidationError(LedgerError):
    """Rejected input (malformed backup bundle, invalid trade fields)."""


# --- Lookup ---
class NotFoundError(LedgerError):
    """Referenced entity does not exist."""


class TradeNotFoundError(NotFoundError):
    """No trade with the requested id."""

    def __init__(self, trade_id: int):
        self.trade_id = trade_id
        super().__init__(f"Trade #{trade_id} not found")


class StrategyNotFoundError(NotFoundError):
    """No strategy with the requested id."""

    def __init__(self, strategy_id: str):
        self.strategy_id = strategy_id
        super().__init__(f"Strategy {strategy_id!r} not found")


# --- External collaborators ---
class ExternalCallError(LedgerError):
    """The audit provider failed; no audit record was created."""
