"""Per-source call statistics for the fetch orchestrator.

Counts calls, successes and failures per source together with response times,
so the CLI and callers can see which providers are pulling their weight.
Statistics are observational only; they never influence source selection.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict

__all__ = (
    "SourceStats",
    "SourceStatistics",
)


@dataclass
class SourceStats:
    """Statistics for a single source."""

    calls: int = 0
    successes: int = 0
    failures: int = 0
    total_time_ms: float = 0.0
    failures_by_reason: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.calls == 0:
            return 0.0
        return (self.successes / self.calls) * 100.0

    @property
    def avg_response_ms(self) -> float:
        if self.calls == 0:
            return 0.0
        return self.total_time_ms / self.calls


class SourceStatistics:
    """Thread-safe collection of :class:`SourceStats` keyed by source name."""

    def __init__(self) -> None:
        self._stats: Dict[str, SourceStats] = defaultdict(SourceStats)
        self._lock = threading.Lock()

    def record_success(self, source: str, elapsed_ms: float) -> None:
        with self._lock:
            stats = self._stats[source]
            stats.calls += 1
            stats.successes += 1
            stats.total_time_ms += elapsed_ms

    def record_failure(self, source: str, elapsed_ms: float, reason: str) -> None:
        with self._lock:
            stats = self._stats[source]
            stats.calls += 1
            stats.failures += 1
            stats.total_time_ms += elapsed_ms
            stats.failures_by_reason[reason] += 1

    def get(self, source: str) -> SourceStats:
        with self._lock:
            return self._stats.get(source) or SourceStats()

    def snapshot(self) -> Dict[str, SourceStats]:
        with self._lock:
            return dict(self._stats)
