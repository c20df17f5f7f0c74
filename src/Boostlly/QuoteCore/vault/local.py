# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.vault.local",
#   "purpose": "Offline quote vault with category filtering and 7-day non-repetition",
#   "sections": [
#     {"id": "vaultstats", "name": "VaultStats", "anchor": "class-vaultstats", "kind": "class"},
#     {"id": "duplicatequote", "name": "DuplicateQuote", "anchor": "class-duplicatequote", "kind": "class"},
#     {"id": "localvault", "name": "LocalVault", "anchor": "class-localvault", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Local fallback vault.

The vault is the last stop of every fallback chain, so
:meth:`LocalVault.get_random_fallback_quote` is total: an empty collection,
an odd category value or a broken history store all still produce a quote.

Selection works in four steps:

1. Filter by category (exact label or tag). Combined group labels such as
   ``"love & kindness"`` are checked first against the raw lower-cased request,
   then ordinary names go through the alias table. An empty result falls back
   to the whole collection.
2. Shuffle the pool with :func:`~Boostlly.QuoteCore.selection.seeded_shuffle`,
   seeded from the date, hour, category length and pool size. The order is
   stable within an hour and changes across hours.
3. Skip anything shown in the last seven days according to the history log;
   when everything was shown, take the least recently shown quote.
4. Append the pick to the history (one entry per quote id, newest 150 kept)
   and stamp ``source="Local"`` on the result.

History persistence is best-effort: storage errors are logged and selection
carries on without history.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..dates import date_key, now_in
from ..selection import seeded_shuffle
from ..storage import HISTORY_KEY, KeyValueStore
from ..types import LOCAL_SOURCE, HistoryEntry, Quote
from .catalog import VaultCatalog, load_bundled_catalog

LOGGER = logging.getLogger(__name__)

HISTORY_DAYS = 7
HISTORY_LIMIT = 150

EMPTY_VAULT_QUOTE = Quote(
    id="local-fallback-1",
    text="Keep going. One step at a time.",
    author="Local",
    category="🌟 General",
    source=LOCAL_SOURCE,
)


@dataclass(frozen=True)
class VaultStats:
    total_quotes: int
    categories: Tuple[str, ...]
    tags: Tuple[str, ...]
    quotes_per_category: Mapping[str, int]
    authors: int


@dataclass(frozen=True)
class DuplicateQuote:
    key: str
    first_id: str
    duplicate_id: str
    text: str
    author: str


class LocalVault:
    """Bundled quotes plus non-repeating selection.

    Args:
        catalog: Quotes and category tables; defaults to the bundled YAML data.
        history_store: Default store for the selection history. A store passed
            to :meth:`get_random_fallback_quote` takes precedence.
        clock: Wall-clock function in seconds.
        timezone: Time reference for date keys (``"local"``, ``"utc"`` or an IANA name).
    """

    def __init__(
        self,
        catalog: Optional[VaultCatalog] = None,
        *,
        history_store: Optional[KeyValueStore] = None,
        clock: Callable[[], float] = time.time,
        timezone: Optional[str] = None,
        history_days: int = HISTORY_DAYS,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.catalog = catalog if catalog is not None else load_bundled_catalog()
        self.history_store = history_store
        self.timezone = timezone
        self.history_days = history_days
        self.history_limit = history_limit
        self._clock = clock

    @property
    def quotes(self) -> Tuple[Quote, ...]:
        return self.catalog.quotes

    # ------------------------------------------------------------------
    # Category handling
    # ------------------------------------------------------------------

    def normalize_category(self, category: Optional[str]) -> Optional[str]:
        if not category or not str(category).strip():
            return None
        key = str(category).strip().lower()
        return self.catalog.aliases.get(key, str(category).strip())

    def by_category(self, category: Optional[str]) -> List[Quote]:
        """Quotes whose category or tags match ``category`` (group labels included)."""
        normalized = self.normalize_category(category)
        if normalized is None:
            return []
        needle = normalized.lower()
        group = self.catalog.groups.get(str(category).lower())
        if group:
            labels = {label.lower() for label in group}
            return [
                q
                for q in self.quotes
                if q.category.lower() in labels or any(t.lower() == needle for t in q.tags)
            ]
        return [q for q in self.quotes if q.matches_category(needle)]

    def categories(self) -> List[str]:
        return sorted({q.category for q in self.quotes if q.category})

    def search(self, query: str) -> List[Quote]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [
            q
            for q in self.quotes
            if needle in q.text.lower()
            or needle in q.author.lower()
            or needle in q.category.lower()
            or any(needle in t.lower() for t in q.tags)
        ]

    def stats(self) -> VaultStats:
        per_category = Counter(q.category for q in self.quotes if q.category)
        return VaultStats(
            total_quotes=len(self.quotes),
            categories=tuple(sorted(per_category)),
            tags=tuple(sorted({t for q in self.quotes for t in q.tags})),
            quotes_per_category=dict(per_category),
            authors=len({q.author for q in self.quotes}),
        )

    def find_duplicates(self) -> List[DuplicateQuote]:
        seen: Dict[str, str] = {}
        duplicates: List[DuplicateQuote] = []
        for q in self.quotes:
            key = f"{q.text.strip().lower()}__{q.author.strip().lower()}"
            first = seen.get(key)
            if first is None:
                seen[key] = q.id
            else:
                duplicates.append(DuplicateQuote(key, first, q.id, q.text, q.author))
        return duplicates

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _read_history(self, store: Optional[KeyValueStore]) -> List[HistoryEntry]:
        if store is None:
            return []
        try:
            raw = store.get(HISTORY_KEY)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug(f"Vault history unavailable: {exc}")
            return []
        entries: List[HistoryEntry] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError):
                continue
        return entries

    def _write_history(
        self, store: Optional[KeyValueStore], history: Sequence[HistoryEntry], chosen: Quote, today: str
    ) -> None:
        if store is None:
            return
        updated = [h for h in history if h.quote_id != chosen.id]
        updated.append(HistoryEntry(chosen.id, today, self._clock() * 1000.0))
        updated = updated[-self.history_limit :]
        try:
            store.set(HISTORY_KEY, [h.to_dict() for h in updated])
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug(f"Could not persist vault history: {exc}")

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _pool(self, category: Optional[str]) -> List[Quote]:
        everything = list(self.quotes)
        if not category:
            return everything
        try:
            filtered = self.by_category(category)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug(f"Ignoring unusable category {category!r}: {exc}")
            filtered = []
        return filtered or everything

    def _seed(self, category: Optional[str], pool_size: int, now: datetime) -> int:
        category_len = len(category) if isinstance(category, str) else 0
        return (
            now.year * 100000
            + now.timetuple().tm_yday * 100
            + now.hour * 10
            + (category_len + pool_size) % 10
        )

    def get_random_fallback_quote(
        self,
        category: Optional[str] = None,
        history_store: Optional[KeyValueStore] = None,
        timezone: Optional[str] = None,
    ) -> Quote:
        """Pick a local quote that was not shown in the last seven days.

        ``timezone`` overrides the vault's own time reference for this call so
        history dates line up with the caller's other date keys.
        """
        if not self.quotes:
            return EMPTY_VAULT_QUOTE
        try:
            return self._select(category, history_store or self.history_store, timezone or self.timezone)
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Vault selection failed; returning first bundled quote")
            return self.quotes[0].with_source(LOCAL_SOURCE)

    def _select(self, category: Optional[str], store: Optional[KeyValueStore], timezone: Optional[str]) -> Quote:
        if category is not None and not isinstance(category, str):
            LOGGER.debug(f"Ignoring non-string category {category!r}")
            category = None
        now = now_in(timezone, self._clock)
        pool = self._pool(category)
        shuffled = seeded_shuffle(pool, self._seed(category, len(pool), now))

        today = date_key(now)
        cutoff = date_key(now - timedelta(days=self.history_days))
        history = self._read_history(store)
        recent = {h.quote_id for h in history if cutoff <= h.date <= today}

        chosen = next((q for q in shuffled if q.id not in recent), None)
        if chosen is None:
            chosen = self._least_recent(shuffled, history)

        self._write_history(store, history, chosen, today)
        return chosen.with_source(LOCAL_SOURCE)

    @staticmethod
    def _least_recent(shuffled: Sequence[Quote], history: Sequence[HistoryEntry]) -> Quote:
        last_seen: Dict[str, float] = {}
        for h in history:
            last_seen[h.quote_id] = max(last_seen.get(h.quote_id, 0.0), h.timestamp)
        best = shuffled[0]
        best_ts = float("inf")
        for q in shuffled:
            ts = last_seen.get(q.id)
            if ts is None:
                return q
            if ts < best_ts:
                best, best_ts = q, ts
        return best


__all__ = (
    "EMPTY_VAULT_QUOTE",
    "HISTORY_DAYS",
    "HISTORY_LIMIT",
    "DuplicateQuote",
    "LocalVault",
    "VaultStats",
)
