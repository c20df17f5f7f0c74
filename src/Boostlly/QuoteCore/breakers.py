# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.breakers",
#   "purpose": "Per-source circuit breakers backed by pybreaker state storage",
#   "sections": [
#     {"id": "breakerconfig", "name": "BreakerConfig", "anchor": "class-breakerconfig", "kind": "class"},
#     {"id": "breakersnapshot", "name": "BreakerSnapshot", "anchor": "class-breakersnapshot", "kind": "class"},
#     {"id": "circuitbreakerregistry", "name": "CircuitBreakerRegistry", "anchor": "class-circuitbreakerregistry", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Per-source circuit breakers for quote providers.

Each remote source gets one breaker record (state, failure count, time of the
last failure). The state machine is the classic Closed → Open → Half-Open →
Closed cycle:

- ``record_failure`` increments the failure count and opens the circuit once the
  count reaches ``failure_threshold``.
- ``is_open`` reports ``True`` only while the circuit is open *and* the reset
  timeout has not elapsed. Once it has elapsed the stored state flips to
  half-open and the call returns ``False``, which is the single trial
  allowance. The failure count is kept until a success is recorded, so a
  failed trial reopens the circuit immediately.
- ``record_success`` always returns the breaker to closed with zero failures.

Sources that were never registered are reported as not-open and every
mutating call on them is ignored, so configuration can grow new sources
without breaking callers.

State lives in ``pybreaker`` storage objects (``CircuitMemoryStorage`` by
default), so a deployment can pass a ``storage_factory`` returning
``pybreaker.CircuitRedisStorage`` to share state between processes.

Example:
  ```python
  registry = CircuitBreakerRegistry(BreakerConfig(failure_threshold=3))
  registry.initialize([Source.ZENQUOTES, Source.QUOTABLE])

  if not registry.is_open(Source.ZENQUOTES):
      try:
          quote = provider.random()
          registry.record_success(Source.ZENQUOTES)
      except ProviderError:
          registry.record_failure(Source.ZENQUOTES)
  ```
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import pybreaker

from .types import Source

LOGGER = logging.getLogger(__name__)

STATE_CLOSED = pybreaker.STATE_CLOSED
STATE_OPEN = pybreaker.STATE_OPEN
STATE_HALF_OPEN = pybreaker.STATE_HALF_OPEN

StorageFactory = Callable[[str], "pybreaker.CircuitBreakerStorage"]


def _memory_storage(_name: str) -> "pybreaker.CircuitBreakerStorage":
    return pybreaker.CircuitMemoryStorage(STATE_CLOSED)


def _key(source: "str | Source") -> str:
    return source.value if isinstance(source, Source) else str(source)


# ────────────────────────────────────────────────────────────────────────────────
# Configuration & snapshots
# ────────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BreakerConfig:
    """Thresholds shared by every source breaker."""

    failure_threshold: int = 3
    reset_timeout_ms: int = 60_000

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.reset_timeout_ms < 0:
            raise ValueError("reset_timeout_ms must be >= 0")


@dataclass(frozen=True)
class BreakerSnapshot:
    """Read-only view of one source's breaker record."""

    source: str
    state: str
    failure_count: int
    last_failure_time: Optional[float]
    failure_threshold: int
    reset_timeout_ms: int


# ────────────────────────────────────────────────────────────────────────────────
# Registry
# ────────────────────────────────────────────────────────────────────────────────


class CircuitBreakerRegistry:
    """Lazily created breaker records keyed by source name.

    Args:
        config: Threshold and reset timeout shared by all sources.
        storage_factory: Builds the pybreaker storage for a newly registered source.
        now: Wall-clock function in seconds (injectable for tests).
    """

    def __init__(
        self,
        config: Optional[BreakerConfig] = None,
        *,
        storage_factory: Optional[StorageFactory] = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or BreakerConfig()
        self._storage_factory = storage_factory or _memory_storage
        self._now = now
        self._lock = threading.RLock()
        self._storages: Dict[str, pybreaker.CircuitBreakerStorage] = {}
        self._last_failure: Dict[str, Optional[float]] = {}

    def initialize(self, sources: Iterable["str | Source"]) -> None:
        """Register sources; existing records are left untouched."""
        with self._lock:
            for source in sources:
                key = _key(source)
                if key in self._storages:
                    continue
                storage = self._storage_factory(key)
                storage.state = STATE_CLOSED
                storage.reset_counter()
                self._storages[key] = storage
                self._last_failure[key] = None

    def sources(self) -> List[str]:
        with self._lock:
            return list(self._storages)

    def is_open(self, source: "str | Source") -> bool:
        key = _key(source)
        with self._lock:
            storage = self._storages.get(key)
            if storage is None or storage.state != STATE_OPEN:
                return False
            last = self._last_failure.get(key) or 0.0
            elapsed_ms = (self._now() - last) * 1000.0
            if elapsed_ms >= self.config.reset_timeout_ms:
                storage.state = STATE_HALF_OPEN
                LOGGER.info(f"Circuit for {key} half-open after {elapsed_ms:.0f}ms; allowing one trial")
                return False
            return True

    def record_failure(self, source: "str | Source") -> None:
        key = _key(source)
        with self._lock:
            storage = self._storages.get(key)
            if storage is None:
                return
            storage.increment_counter()
            self._last_failure[key] = self._now()
            count = storage.counter
            if count >= self.config.failure_threshold and storage.state != STATE_OPEN:
                storage.state = STATE_OPEN
                LOGGER.warning(
                    f"Circuit opened for {key} after {count} failures "
                    f"(reset in {self.config.reset_timeout_ms}ms)"
                )

    def record_success(self, source: "str | Source") -> None:
        key = _key(source)
        with self._lock:
            storage = self._storages.get(key)
            if storage is None:
                return
            if storage.state != STATE_CLOSED:
                LOGGER.info(f"Circuit closed for {key}")
            storage.state = STATE_CLOSED
            storage.reset_counter()

    def get_state(self, source: "str | Source") -> Optional[BreakerSnapshot]:
        key = _key(source)
        with self._lock:
            storage = self._storages.get(key)
            if storage is None:
                return None
            return BreakerSnapshot(
                source=key,
                state=storage.state,
                failure_count=storage.counter,
                last_failure_time=self._last_failure.get(key),
                failure_threshold=self.config.failure_threshold,
                reset_timeout_ms=self.config.reset_timeout_ms,
            )

    def snapshot(self) -> List[BreakerSnapshot]:
        with self._lock:
            keys = list(self._storages)
        return [snap for snap in (self.get_state(k) for k in keys) if snap is not None]

    def reset(self, source: "str | Source") -> None:
        key = _key(source)
        with self._lock:
            storage = self._storages.get(key)
            if storage is None:
                return
            storage.state = STATE_CLOSED
            storage.reset_counter()
            self._last_failure[key] = None

    def reset_all(self) -> None:
        with self._lock:
            for key in list(self._storages):
                self.reset(key)


__all__ = (
    "STATE_CLOSED",
    "STATE_HALF_OPEN",
    "STATE_OPEN",
    "BreakerConfig",
    "BreakerSnapshot",
    "CircuitBreakerRegistry",
)
