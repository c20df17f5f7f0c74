# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.types",
#   "purpose": "Immutable value types shared by every QuoteCore component",
#   "sections": [
#     {"id": "source", "name": "Source", "anchor": "class-source", "kind": "class"},
#     {"id": "quote", "name": "Quote", "anchor": "class-quote", "kind": "class"},
#     {"id": "historyentry", "name": "HistoryEntry", "anchor": "class-historyentry", "kind": "class"},
#     {"id": "healthreport", "name": "HealthReport", "anchor": "class-healthreport", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Value types for QuoteCore.

A :class:`Quote` is created by a provider or by the local vault and is never
mutated afterwards; helpers such as :meth:`Quote.with_source` return a new
instance. :class:`Source` enumerates the remote providers plus the ``Local``
sentinel used for vault items.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

LOCAL_SOURCE = "Local"


class Source(str, Enum):
    """Named origins of quotes."""

    ZENQUOTES = "ZenQuotes"
    QUOTABLE = "Quotable"
    FAVQS = "FavQs"
    THEY_SAID_SO = "They Said So"
    QUOTEGARDEN = "QuoteGarden"
    STOIC = "Stoic Quotes"
    PROGRAMMING = "Programming Quotes"
    DUMMYJSON = "DummyJSON"
    LOCAL = LOCAL_SOURCE

    @property
    def is_remote(self) -> bool:
        return self is not Source.LOCAL

    @classmethod
    def parse(cls, value: "str | Source") -> Optional["Source"]:
        """Resolve a source by value or member name (case-insensitive); ``None`` if unknown."""
        if isinstance(value, Source):
            return value
        needle = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == needle or member.name.lower() == needle:
                return member
        return None


REMOTE_SOURCES: Tuple[Source, ...] = tuple(s for s in Source if s.is_remote)


@dataclass(frozen=True)
class Quote:
    """A single quote with its provenance."""

    id: str
    text: str
    author: str
    category: str = "general"
    tags: Tuple[str, ...] = ()
    source: str = LOCAL_SOURCE

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("quote id must be non-empty")
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    def with_source(self, source: "str | Source") -> "Quote":
        value = source.value if isinstance(source, Source) else str(source)
        return replace(self, source=value)

    @property
    def signature(self) -> str:
        """Text+author key used to spot the same quote under different ids."""
        return f"{self.text.strip().lower()}|{self.author.strip().lower()}"

    def is_same_as(self, other: "Quote") -> bool:
        return self.id == other.id or self.signature == other.signature

    def matches_category(self, needle: str) -> bool:
        needle = needle.lower()
        return self.category.lower() == needle or any(t.lower() == needle for t in self.tags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "author": self.author,
            "category": self.category,
            "tags": list(self.tags),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quote":
        return cls(
            id=str(data["id"]),
            text=str(data["text"]),
            author=str(data.get("author") or "Unknown"),
            category=str(data.get("category") or "general"),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            source=str(data.get("source") or LOCAL_SOURCE),
        )


NO_QUOTES = Quote(
    id="no-quotes",
    text="No quotes available.",
    author="System",
    category="general",
    source=LOCAL_SOURCE,
)


@dataclass(frozen=True)
class HistoryEntry:
    """One vault selection, used only for non-repetition."""

    quote_id: str
    date: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {"quoteId": self.quote_id, "date": self.date, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            quote_id=str(data["quoteId"]),
            date=str(data["date"]),
            timestamp=float(data.get("timestamp", 0.0)),
        )


HealthStatus = Literal["healthy", "degraded", "down"]


@dataclass(frozen=True)
class HealthReport:
    status: HealthStatus
    response_time_ms: float
    error: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_latency(cls, elapsed_ms: float) -> "HealthReport":
        if elapsed_ms < 1000:
            return cls("healthy", elapsed_ms)
        if elapsed_ms < 3000:
            return cls("degraded", elapsed_ms)
        return cls("down", elapsed_ms)


__all__ = (
    "LOCAL_SOURCE",
    "NO_QUOTES",
    "REMOTE_SOURCES",
    "HealthReport",
    "HealthStatus",
    "HistoryEntry",
    "Quote",
    "Source",
)
