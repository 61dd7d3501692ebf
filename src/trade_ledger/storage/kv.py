"""Key-value persistence for ledger state.

``KeyValueStore`` is the protocol.  Two implementations ship:

* ``MemoryKeyValueStore`` -- for unit tests and throwaway sessions.
* ``JsonFileKeyValueStore`` -- one JSON object per file, rewritten
  atomically on every change.

Values are opaque strings (usually JSON documents); the typed codec
lives in :mod:`trade_ledger.storage.ledger_store`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from trade_ledger.core.file_io import atomic_write_text, read_text_or_none

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class KeyValueStore(Protocol):
    """Load-at-startup / save-on-change string store."""

    def load(self, key: str) -> str | None:
        """Return the raw value for *key*, or None if absent."""
        ...

    def save(self, key: str, raw: str) -> None:
        """Store *raw* under *key*, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""
        ...


# ---------------------------------------------------------------------------
# MemoryKeyValueStore  (tests)
# ---------------------------------------------------------------------------


class MemoryKeyValueStore:
    """In-memory implementation -- no persistence."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self._items.get(key)

    def save(self, key: str, raw: str) -> None:
        self._items[key] = raw

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    # -- helpers for tests --------------------------------------------------

    @property
    def items(self) -> dict[str, str]:
        return self._items

    def clear(self) -> None:
        self._items.clear()


# ---------------------------------------------------------------------------
# JsonFileKeyValueStore  (CLI)
# ---------------------------------------------------------------------------


class JsonFileKeyValueStore:
    """JSON file-backed implementation.

    The whole mapping is loaded on init and rewritten on every
    ``save``/``remove``.  A missing file starts empty; a corrupt file is
    logged and also starts empty (its content is replaced on the next
    write).
    """

    def __init__(self, path: str | Path = "data/ledger.json") -> None:
        self._path = Path(path)
        self._items: dict[str, str] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    # -- public API ---------------------------------------------------------

    def load(self, key: str) -> str | None:
        return self._items.get(key)

    def save(self, key: str, raw: str) -> None:
        self._items[key] = raw
        self._persist()

    def remove(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._persist()

    # -- internals ----------------------------------------------------------

    def _load(self) -> None:
        text = read_text_or_none(self._path)
        if text is None or not text.strip():
            return
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt ledger store %s", self._path)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring ledger store %s: top level is not an object", self._path)
            return
        self._items = {k: v for k, v in data.items() if isinstance(v, str)}
        logger.info("Loaded %d keys from %s", len(self._items), self._path)

    def _persist(self) -> None:
        atomic_write_text(self._path, json.dumps(self._items, indent=2, sort_keys=True))
