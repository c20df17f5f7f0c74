"""
QuoteCore Configuration Package

Public API for loading, validating, and introspecting QuoteCore configuration.

Example:
    from Boostlly.QuoteCore.config import load_config

    # Load from file with env/CLI overrides
    config = load_config(
        path="quotes.yaml",
        cli_overrides={"fetch": {"timezone": "UTC"}},
    )

    # Get config hash for reproducibility
    config_id = config.config_hash()
"""

from .loader import (
    DEFAULT_ENV_PREFIX,
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    BreakerSettings,
    CacheSettings,
    FetchSettings,
    HttpSettings,
    QuoteCoreConfig,
    RateLimitSettings,
    RetryPolicy,
    SourceSettings,
    VaultSettings,
)

__all__ = [
    # Models
    "QuoteCoreConfig",
    "BreakerSettings",
    "CacheSettings",
    "FetchSettings",
    "HttpSettings",
    "RateLimitSettings",
    "RetryPolicy",
    "SourceSettings",
    "VaultSettings",
    # Loading/validation
    "DEFAULT_ENV_PREFIX",
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
