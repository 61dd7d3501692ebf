"""Run an audit and turn its result into an :class:`Audit` record."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from trade_ledger.core.errors import ExternalCallError
from trade_ledger.core.ids import format_timestamp, utc_now
from trade_ledger.ledger.record import Trade

from .models import Audit, AuditParameters, Strategy
from .provider import AuditProvider

logger = logging.getLogger(__name__)


async def run_audit(
    provider: AuditProvider,
    trades: Sequence[Trade],
    strategy: Strategy | None = None,
    parameters: AuditParameters | None = None,
    *,
    now: datetime | None = None,
) -> Audit:
    """Await one provider call and build the resulting audit record.

    The record's ``id`` and ``date`` are the completion timestamp.
    ``parameters.strategy_name`` is set from *strategy* (``"Default"``
    without one) and ``trade_count`` from *trades*.

    Raises
    ------
    ExternalCallError
        If the provider fails.  No record is produced.
    """
    params = (parameters or AuditParameters()).model_copy(update={
        "strategy_name": strategy.name if strategy is not None else "Default",
        "trade_count": len(trades),
    })

    try:
        result = await provider.run_audit(trades, strategy)
    except ExternalCallError:
        logger.exception("Audit provider failed for %d trades", len(trades))
        raise
    except Exception as exc:
        logger.exception("Audit provider failed for %d trades", len(trades))
        raise ExternalCallError(f"Audit failed: {exc}") from exc

    stamp = format_timestamp(now or utc_now())
    logger.info("Audit completed: %d trades, strategy=%s", len(trades), params.strategy_name)
    return Audit(id=stamp, date=stamp, parameters=params, result=result)
