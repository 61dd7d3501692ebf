"""Audit and strategy records.

Pydantic models stored as JSON lists under the ``tradingStrategies``
and ``cryptoAudits`` keys.  Field aliases keep the stored documents in
camelCase so backups stay interchangeable with older exports.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from trade_ledger.core.ids import format_timestamp, new_id, utc_now


def _now_iso() -> str:
    return format_timestamp(utc_now())


class Strategy(BaseModel):
    """A named trading plan the audit is measured against."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    rules: list[str] = Field(default_factory=list)


class AuditParameters(BaseModel):
    """What an audit covered."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    strategy_name: str = Field(default="Default", alias="strategyName")
    trade_count: int = Field(default=0, alias="tradeCount")
    scope: str = "all"  # "all", "last N", "filtered", "ids 3-10", ...
    start_id: int | None = Field(default=None, alias="startId")
    end_id: int | None = Field(default=None, alias="endId")


class Audit(BaseModel):
    """One completed AI review of a trade set.  Immutable once created."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = Field(default_factory=_now_iso)
    date: str = Field(default_factory=_now_iso)
    parameters: AuditParameters = Field(default_factory=AuditParameters)
    result: str = ""
