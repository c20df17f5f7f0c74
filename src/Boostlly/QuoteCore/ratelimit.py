# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.ratelimit",
#   "purpose": "Per-source request budgets with pyrate-limiter",
#   "sections": [
#     {"id": "ratelimitpolicy", "name": "RateLimitPolicy", "anchor": "class-ratelimitpolicy", "kind": "class"},
#     {"id": "sourceratelimiter", "name": "SourceRateLimiter", "anchor": "class-sourceratelimiter", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Per-source rate limiting.

Every remote source gets a request budget described as a bucket: up to
``capacity`` calls back to back, refilled at ``refill_per_min`` calls per
minute. The budget maps onto a single pyrate-limiter sliding window of
``capacity`` calls per ``capacity / refill_per_min`` minutes, which allows the
same burst and the same sustained rate.

A source without a budget is never limited. Acquisition never waits: a source
that is out of budget is skipped for this call and the fallback chain moves on.
Rate limiting is not a provider failure and never touches the breakers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional

from pyrate_limiter import Limiter, Rate

from .types import REMOTE_SOURCES, Source

if TYPE_CHECKING:
    from .config.models import QuoteCoreConfig

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Bucket size and refill speed for one source."""

    capacity: int
    refill_per_min: float

    @property
    def window_ms(self) -> int:
        return max(1, int(round(self.capacity * 60_000 / self.refill_per_min)))

    def rates(self) -> List[Rate]:
        return [Rate(self.capacity, self.window_ms)]

    def describe(self) -> str:
        return f"{self.capacity}/{self.window_ms / 1000:g}s"


DEFAULT_RATE_LIMIT = RateLimitPolicy(capacity=3, refill_per_min=6)

DEFAULT_RATE_LIMITS: Dict[Source, RateLimitPolicy] = {
    Source.ZENQUOTES: RateLimitPolicy(3, 6),
    Source.QUOTABLE: RateLimitPolicy(5, 10),
    Source.FAVQS: RateLimitPolicy(3, 6),
    Source.THEY_SAID_SO: RateLimitPolicy(2, 4),
    Source.QUOTEGARDEN: RateLimitPolicy(3, 6),
    Source.STOIC: RateLimitPolicy(4, 8),
    Source.PROGRAMMING: RateLimitPolicy(4, 8),
    Source.DUMMYJSON: RateLimitPolicy(10, 20),
}


class SourceRateLimiter:
    """One pyrate-limiter ``Limiter`` per registered source.

    Args:
        policies: Budget per source; sources missing here get
            :data:`DEFAULT_RATE_LIMIT` when registered.
        enabled: When false every acquisition succeeds.
    """

    def __init__(
        self,
        policies: Optional[Mapping[Source, RateLimitPolicy]] = None,
        *,
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._policies: Dict[Source, RateLimitPolicy] = dict(
            DEFAULT_RATE_LIMITS if policies is None else policies
        )
        self._limiters: Dict[Source, Limiter] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "QuoteCoreConfig") -> "SourceRateLimiter":
        """Default budgets with per-source ``rate_capacity``/``rate_refill_per_min`` overrides."""
        policies: Dict[Source, RateLimitPolicy] = {}
        for source in REMOTE_SOURCES:
            base = DEFAULT_RATE_LIMITS.get(source, DEFAULT_RATE_LIMIT)
            settings = config.source_settings(source)
            policies[source] = RateLimitPolicy(
                capacity=settings.rate_capacity or base.capacity,
                refill_per_min=settings.rate_refill_per_min or base.refill_per_min,
            )
        return cls(policies, enabled=config.rate_limits.enabled)

    def initialize(self, sources: Iterable[Source]) -> None:
        """Create limiters for new sources; existing budgets are left alone."""
        with self._lock:
            for source in sources:
                if source in self._limiters or not source.is_remote:
                    continue
                policy = self._policies.setdefault(source, DEFAULT_RATE_LIMIT)
                self._limiters[source] = Limiter(policy.rates(), raise_when_fail=False, max_delay=None)

    def policy(self, source: Source) -> Optional[RateLimitPolicy]:
        return self._policies.get(source) if source in self._limiters else None

    def try_acquire(self, source: Source) -> bool:
        """Take one call from ``source``'s budget; ``False`` when it is spent."""
        if not self.enabled:
            return True
        limiter = self._limiters.get(source)
        if limiter is None:
            return True
        acquired = bool(limiter.try_acquire(source.value, weight=1))
        if not acquired:
            LOGGER.info(f"Rate limit reached for {source.value} ({self._policies[source].describe()})")
        return acquired


__all__ = (
    "DEFAULT_RATE_LIMIT",
    "DEFAULT_RATE_LIMITS",
    "RateLimitPolicy",
    "SourceRateLimiter",
)
