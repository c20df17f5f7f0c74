# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.storage",
#   "purpose": "Injected key-value persistence for history, caches and daily state",
#   "sections": [
#     {"id": "keyvaluestore", "name": "KeyValueStore", "anchor": "class-keyvaluestore", "kind": "class"},
#     {"id": "inmemorystore", "name": "InMemoryStore", "anchor": "class-inmemorystore", "kind": "class"},
#     {"id": "sqlitestore", "name": "SQLiteStore", "anchor": "class-sqlitestore", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Key-value storage used by the vault and the fetch orchestrator.

QuoteCore does not own persistence; callers inject a :class:`KeyValueStore`.
Values are JSON-compatible (dicts, lists, strings, numbers). Two backends ship
with the package:

- :class:`InMemoryStore` for tests and short-lived processes.
- :class:`SQLiteStore` for durable state across restarts. Values are stored as
  JSON text in a single table; the connection runs in WAL mode so a CLI
  invocation and a long-running process can share one file.

Backends raise :class:`~Boostlly.QuoteCore.errors.StorageError` on failure;
callers treat persistence as best-effort and log those errors.

Typical Usage:
    store = SQLiteStore(Path("~/.boostlly/quotes.sqlite").expanduser())
    store.set("quotes-last-fetch", "2024-01-15")
    store.get("quotes-last-fetch")  # -> "2024-01-15"
"""

from __future__ import annotations

import copy
import json
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .errors import StorageError

# Keys shared by the vault and the orchestrator.
QUOTES_KEY = "quotes"
QUOTES_CACHE_KEY = "quotes-cache"
LAST_FETCH_KEY = "quotes-last-fetch"
DAILY_QUOTE_KEY = "dailyQuote"
DAILY_QUOTE_DATE_KEY = "dailyQuoteDate"
SETTINGS_KEY = "settings"
TIMEZONE_KEY = "quoteTimezone"
HISTORY_KEY = "quoteHistoryV2"


@runtime_checkable
class KeyValueStore(Protocol):
    """Synchronous key-value persistence capability."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryStore:
    """Process-local store; values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


# ────────────────────────────────────────────────────────────────────────────────
# SQLite backend
# ────────────────────────────────────────────────────────────────────────────────

_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA busy_timeout=4000;
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,          -- JSON-encoded payload
    updated_at REAL NOT NULL      -- UTC epoch seconds
);
"""


@dataclass
class SQLiteStore:
    """
    Durable key-value store backed by SQLite.

    Parameters
    ----------
    db_path : Path
        Database file. Parent directories are created if missing.
    now_wall : Callable[[], float]
        Wall-clock function used for ``updated_at`` (default: time.time).
    """

    db_path: Path
    now_wall: Callable[[], float] = time.time
    _conn: sqlite3.Connection = field(init=False, repr=False)
    _lock: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.executescript(_DDL)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open quote store at {self.db_path}: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        try:
            with self._lock:
                row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Read failed for {key!r}: {exc}", key=key) from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as exc:
            raise StorageError(f"Corrupt value stored under {key!r}: {exc}", key=key) from exc

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key!r} is not JSON serializable: {exc}", key=key) from exc
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO kv_store(key, value, updated_at) VALUES(?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, payload, self.now_wall()),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Write failed for {key!r}: {exc}", key=key) from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise StorageError(f"Delete failed for {key!r}: {exc}", key=key) from exc

    def keys(self) -> List[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = (
    "DAILY_QUOTE_DATE_KEY",
    "DAILY_QUOTE_KEY",
    "HISTORY_KEY",
    "LAST_FETCH_KEY",
    "QUOTES_CACHE_KEY",
    "QUOTES_KEY",
    "SETTINGS_KEY",
    "TIMEZONE_KEY",
    "InMemoryStore",
    "KeyValueStore",
    "SQLiteStore",
)
