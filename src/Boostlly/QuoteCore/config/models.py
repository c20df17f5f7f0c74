"""
Pydantic v2 Configuration Models for QuoteCore

Provides strict, typed configuration for every QuoteCore subsystem:
- Circuit breaker thresholds
- Smart cache bounds and TTLs
- Provider retry policy and HTTP client settings
- Per-source enablement, weight, timeout, credentials and request budget
- Vault history window
- Fetch orchestrator behaviour (caching, timezone, worker pool)
- Top-level QuoteCoreConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

import hashlib
import json
from typing import ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..breakers import BreakerConfig
from ..sources import DEFAULT_SOURCE_WEIGHTS
from ..types import Source

# ============================================================================
# Resilience
# ============================================================================


class BreakerSettings(BaseModel):
    """Circuit breaker thresholds shared by all sources."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    failure_threshold: int = Field(default=3, description="Failures that open a circuit")
    reset_timeout_ms: int = Field(default=60_000, description="Open duration before a half-open trial")

    @field_validator("failure_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("failure_threshold must be >= 1")
        return v

    @field_validator("reset_timeout_ms")
    @classmethod
    def validate_reset(cls, v: int) -> int:
        if v < 0:
            raise ValueError("reset_timeout_ms must be >= 0")
        return v

    def to_breaker_config(self) -> BreakerConfig:
        return BreakerConfig(
            failure_threshold=self.failure_threshold,
            reset_timeout_ms=self.reset_timeout_ms,
        )


class RetryPolicy(BaseModel):
    """Retry policy for transient provider transport errors."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=2, description="Attempts per provider call (1 disables retry)")
    base_delay_ms: int = Field(default=250, description="Base delay in ms")
    max_delay_ms: int = Field(default=2000, description="Maximum delay in ms")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("base_delay_ms", "max_delay_ms")
    @classmethod
    def validate_delays(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Delay values must be >= 0")
        return v


# ============================================================================
# Cache
# ============================================================================


class CacheSettings(BaseModel):
    """Smart cache bounds."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_size_bytes: int = Field(default=50 * 1024 * 1024, description="Total cache size bound")
    max_items: int = Field(default=1000, description="Entry count bound")
    default_ttl_s: float = Field(default=24 * 3600.0, description="TTL when none is given")
    cleanup_interval_s: float = Field(default=300.0, description="Expiry sweep period (0 disables)")
    search_ttl_s: float = Field(default=3600.0, description="TTL for memoized search results")

    @field_validator("max_size_bytes", "max_items")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v

    @field_validator("default_ttl_s", "cleanup_interval_s", "search_ttl_s")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Must be >= 0")
        return v


# ============================================================================
# Network
# ============================================================================


class HttpSettings(BaseModel):
    """HTTP client settings shared by all providers."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="boostlly-quotes/1.0", description="User-Agent header")
    timeout_connect_s: float = Field(default=3.0, description="Connect timeout")
    timeout_read_s: float = Field(default=8.0, description="Read timeout")
    max_connections: int = Field(default=10, description="Connection pool size")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("timeout_connect_s", "timeout_read_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v


class SourceSettings(BaseModel):
    """Per-source overrides."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Build a provider for this source")
    weight: Optional[float] = Field(default=None, description="Primary-selection weight override")
    timeout_s: float = Field(default=8.0, description="Per-call timeout")
    base_url: Optional[str] = Field(default=None, description="Override the API base URL")
    api_key: Optional[str] = Field(default=None, description="API key where the source needs one")
    rate_capacity: Optional[int] = Field(default=None, description="Burst size of the request budget")
    rate_refill_per_min: Optional[float] = Field(
        default=None, description="Requests per minute returned to the budget"
    )

    @field_validator("rate_capacity", "rate_refill_per_min")
    @classmethod
    def validate_rate(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("rate budget values must be > 0")
        return v

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("weight must be >= 0")
        return v

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_s must be > 0")
        return v


class RateLimitSettings(BaseModel):
    """Per-source request budgets (see :mod:`Boostlly.QuoteCore.ratelimit`)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Skip sources whose request budget is spent")


# ============================================================================
# Vault & orchestrator
# ============================================================================


class VaultSettings(BaseModel):
    """Local vault non-repetition window."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    history_days: int = Field(default=7, description="Days a shown quote is held back")
    history_limit: int = Field(default=150, description="History entries kept")

    @field_validator("history_days", "history_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be >= 1")
        return v


class FetchSettings(BaseModel):
    """Fetch orchestrator behaviour."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    cache_enabled: bool = Field(default=True, description="Serve stored quote lists when present")
    max_cache_size: int = Field(default=100, description="Remote quotes kept by daily enrichment")
    timezone: Optional[str] = Field(
        default=None, description="'local', 'utc' or an IANA zone; unset defers to stored settings"
    )
    max_workers: int = Field(default=4, description="Threads for provider calls")

    @field_validator("max_cache_size", "max_workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be >= 1")
        return v


# ============================================================================
# Top-level
# ============================================================================


class QuoteCoreConfig(BaseModel):
    """Complete QuoteCore configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    breakers: BreakerSettings = Field(default_factory=BreakerSettings)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    rate_limits: RateLimitSettings = Field(default_factory=RateLimitSettings)
    vault: VaultSettings = Field(default_factory=VaultSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    sources: Dict[str, SourceSettings] = Field(
        default_factory=dict, description="Per-source overrides keyed by source name"
    )

    @field_validator("sources")
    @classmethod
    def validate_sources(cls, v: Dict[str, SourceSettings]) -> Dict[str, SourceSettings]:
        normalized: Dict[str, SourceSettings] = {}
        for name, settings in v.items():
            source = Source.parse(name)
            if source is None or not source.is_remote:
                raise ValueError(f"Unknown remote source: {name}")
            normalized[source.value] = settings
        return normalized

    def source_settings(self, source: Source) -> SourceSettings:
        return self.sources.get(source.value) or SourceSettings()

    def enabled_sources(self) -> list[Source]:
        return [s for s in Source if s.is_remote and self.source_settings(s).enabled]

    def weights(self) -> Dict[Source, float]:
        """Default weights with overrides applied; disabled sources weigh 0."""
        out: Dict[Source, float] = {}
        for source, default in DEFAULT_SOURCE_WEIGHTS.items():
            settings = self.source_settings(source)
            if not settings.enabled:
                out[source] = 0.0
            else:
                out[source] = default if settings.weight is None else settings.weight
        return out

    def config_hash(self) -> str:
        """Stable SHA256 of the normalized configuration."""
        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
