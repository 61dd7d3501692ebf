"""Id and timestamp helpers shared by the ledger, audits and backups.

Timestamps
----------
All timestamps are ``datetime`` with ``tzinfo=timezone.utc``, never naive.
Naive values coming from user input or storage are interpreted as UTC.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for strategy and audit IDs."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime, or convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO 8601 timestamp (``Z`` suffix accepted) into UTC.

    Raises
    ------
    ValueError
        If *raw* is not a valid ISO 8601 timestamp.
    """
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO 8601 UTC with millisecond precision."""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
