"""Safe file I/O utilities.

Provides an atomic whole-file replace with file locking (``fcntl``)
and ``fsync`` so a crash mid-write leaves the previous content intact.
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace the content of *path* with *text* atomically.

    * The text is written to a sibling temporary file, flushed and
      ``fsync``-ed, then moved over *path* with ``os.replace``.
    * An exclusive ``fcntl`` lock on ``<path>.lock`` serialises writers
      from concurrent processes sharing the same file.
    * Parent directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_name(path.name + ".lock")
    with open(lock_path, "a") as lock:
        fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                raise
        finally:
            fcntl.flock(lock.fileno(), fcntl.LOCK_UN)


def read_text_or_none(path: Path) -> str | None:
    """Return the file content, or None if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
