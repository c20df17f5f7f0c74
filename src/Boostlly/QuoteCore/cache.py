# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.cache",
#   "purpose": "Bounded TTL cache with priority/recency-aware eviction",
#   "sections": [
#     {"id": "cacheentry", "name": "CacheEntry", "anchor": "class-cacheentry", "kind": "class"},
#     {"id": "cachestats", "name": "CacheStats", "anchor": "class-cachestats", "kind": "class"},
#     {"id": "estimate-size", "name": "estimate_size", "anchor": "function-estimate-size", "kind": "function"},
#     {"id": "eviction-score", "name": "eviction_score", "anchor": "function-eviction-score", "kind": "function"},
#     {"id": "smartcache", "name": "SmartCache", "anchor": "class-smartcache", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Smart cache used underneath the fetch orchestrator.

Entries carry a TTL, a caller-supplied priority, an estimated byte size and a
set of tags. Two limits bound the cache: total size (``max_size_bytes``) and
entry count (``max_items``). Before every insert :meth:`SmartCache.ensure_space`
evicts entries in descending :func:`eviction_score` order until both limits
hold for the incoming entry.

The eviction score is a weighted sum:

===========================  ======
factor                       weight
===========================  ======
1 / priority                 0.4
age in days                  0.3
hours since last access      0.2
1 / (accesses per hour + 1)  0.1
===========================  ======

Higher scores are evicted first, so low-priority, old, idle and rarely read
entries go before anything else.

Expired entries are dropped lazily on :meth:`SmartCache.get` and proactively by
a background sweeper thread running every ``cleanup_interval_s`` seconds. The
sweeper is a daemon thread; call :meth:`SmartCache.close` (or use the cache as
a context manager) to stop it.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_ITEMS = 1000
DEFAULT_TTL_S = 24 * 60 * 60.0
DEFAULT_CLEANUP_INTERVAL_S = 5 * 60.0
FALLBACK_SIZE_BYTES = 1024

_MISSING = object()


@dataclass
class CacheEntry:
    key: str
    data: Any
    timestamp: float
    last_accessed: float
    expires_at: float
    size: int
    priority: float = 1.0
    access_count: int = 0
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    size: int
    item_count: int
    hits: int
    misses: int
    hit_rate: float
    average_access_count: float
    oldest_item: Optional[float]
    newest_item: Optional[float]


def estimate_size(data: Any) -> int:
    """UTF-8 length of the JSON encoding, or a flat 1 KiB when encoding fails."""
    try:
        return len(json.dumps(data, ensure_ascii=False).encode("utf-8"))
    except (TypeError, ValueError, OverflowError):
        return FALLBACK_SIZE_BYTES


def eviction_score(entry: CacheEntry, now: float) -> float:
    """Higher means more evictable."""
    age_hours = max(now - entry.timestamp, 0.0) / 3600.0
    age_days = age_hours / 24.0
    idle_hours = max(now - entry.last_accessed, 0.0) / 3600.0
    accesses_per_hour = entry.access_count / max(age_hours, 1.0)
    priority = entry.priority if entry.priority > 0 else 1e-6
    return (
        (1.0 / priority) * 0.4
        + age_days * 0.3
        + idle_hours * 0.2
        + (1.0 / (accesses_per_hour + 1.0)) * 0.1
    )


class SmartCache:
    """Bounded in-process cache with TTL expiry and scored eviction.

    Args:
        max_size_bytes: Upper bound on the summed entry sizes.
        max_items: Upper bound on the number of entries.
        default_ttl_s: TTL applied when ``set`` gets none.
        cleanup_interval_s: Sweep period; ``0`` disables the background sweeper.
        clock: Wall-clock function in seconds.
        start_sweeper: Start the sweeper thread immediately.
    """

    def __init__(
        self,
        *,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        max_items: int = DEFAULT_MAX_ITEMS,
        default_ttl_s: float = DEFAULT_TTL_S,
        cleanup_interval_s: float = DEFAULT_CLEANUP_INTERVAL_S,
        clock: Callable[[], float] = time.time,
        start_sweeper: bool = True,
    ) -> None:
        if max_size_bytes <= 0 or max_items <= 0:
            raise ValueError("max_size_bytes and max_items must be > 0")
        self.max_size_bytes = max_size_bytes
        self.max_items = max_items
        self.default_ttl_s = default_ttl_s
        self.cleanup_interval_s = cleanup_interval_s
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._current_size = 0
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper and cleanup_interval_s > 0:
            self.start()

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "SmartCache":
        """Build from a :class:`~Boostlly.QuoteCore.config.CacheSettings`."""
        return cls(
            max_size_bytes=settings.max_size_bytes,
            max_items=settings.max_items,
            default_ttl_s=settings.default_ttl_s,
            cleanup_interval_s=settings.cleanup_interval_s,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="smart-cache-sweeper", daemon=True)
        self._sweeper.start()

    def close(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def __enter__(self) -> "SmartCache":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.cleanup_interval_s):
            try:
                removed = self.sweep_expired()
                if removed:
                    LOGGER.debug(f"Cache sweep removed {removed} expired entries")
            except Exception:  # pylint: disable=broad-except
                LOGGER.exception("Cache sweep failed")

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())

    @property
    def current_size(self) -> int:
        return self._current_size

    def set(
        self,
        key: str,
        data: Any,
        *,
        ttl_s: Optional[float] = None,
        priority: float = 1.0,
        tags: Iterable[str] = (),
        size: Optional[int] = None,
    ) -> bool:
        """Store ``data``; returns ``False`` when the value cannot fit at all."""
        entry_size = size if size is not None else estimate_size(data)
        if entry_size > self.max_size_bytes:
            LOGGER.warning(f"Not caching {key!r}: {entry_size} bytes exceeds cache size {self.max_size_bytes}")
            return False
        now = self._clock()
        ttl = self.default_ttl_s if ttl_s is None else ttl_s
        with self._lock:
            self._remove(key)
            self.ensure_space(entry_size)
            self._entries[key] = CacheEntry(
                key=key,
                data=data,
                timestamp=now,
                last_accessed=now,
                expires_at=now + ttl,
                size=entry_size,
                priority=priority,
                tags=frozenset(tags),
            )
            self._current_size += entry_size
        return True

    def get(self, key: str, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if entry.is_expired(now):
                self._remove(key)
                self._misses += 1
                return default
            entry.access_count += 1
            entry.last_accessed = now
            self._hits += 1
            return entry.data

    def get_or_set(
        self,
        key: str,
        producer: Callable[[], Any],
        *,
        ttl_s: Optional[float] = None,
        priority: float = 1.0,
        tags: Iterable[str] = (),
        size: Optional[int] = None,
    ) -> Any:
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = producer()
        self.set(key, value, ttl_s=ttl_s, priority=priority, tags=tags, size=size)
        return value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._current_size = 0

    def invalidate_tag(self, tag: str) -> int:
        with self._lock:
            keys = [k for k, e in self._entries.items() if tag in e.tags]
            for key in keys:
                self._remove(key)
        return len(keys)

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                self._remove(key)
        return len(expired)

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._current_size -= entry.size
        return True

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def ensure_space(self, required_size: int) -> List[str]:
        """Evict by descending score until ``required_size`` more bytes and one more entry fit."""
        with self._lock:
            over_size = self._current_size + required_size - self.max_size_bytes
            over_count = len(self._entries) + 1 - self.max_items
            if over_size <= 0 and over_count <= 0:
                return []
            now = self._clock()
            candidates = sorted(
                self._entries.values(),
                key=lambda e: eviction_score(e, now),
                reverse=True,
            )
            evicted: List[str] = []
            for entry in candidates:
                if over_size <= 0 and over_count <= 0:
                    break
                self._remove(entry.key)
                evicted.append(entry.key)
                over_size -= entry.size
                over_count -= 1
            if evicted:
                LOGGER.debug(f"Evicted {len(evicted)} cache entries to free space")
            return evicted

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        with self._lock:
            entries = list(self._entries.values())
            lookups = self._hits + self._misses
            return CacheStats(
                size=self._current_size,
                item_count=len(entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=(self._hits / lookups) if lookups else 0.0,
                average_access_count=(
                    sum(e.access_count for e in entries) / len(entries) if entries else 0.0
                ),
                oldest_item=min((e.timestamp for e in entries), default=None),
                newest_item=max((e.timestamp for e in entries), default=None),
            )


__all__ = (
    "DEFAULT_CLEANUP_INTERVAL_S",
    "DEFAULT_MAX_ITEMS",
    "DEFAULT_MAX_SIZE_BYTES",
    "DEFAULT_TTL_S",
    "CacheEntry",
    "CacheStats",
    "SmartCache",
    "estimate_size",
    "eviction_score",
)
