"""Bundled offline quotes and the non-repeating local fallback picker."""

from .catalog import VaultCatalog, load_bundled_catalog, parse_quotes
from .local import (
    EMPTY_VAULT_QUOTE,
    HISTORY_DAYS,
    HISTORY_LIMIT,
    DuplicateQuote,
    LocalVault,
    VaultStats,
)

__all__ = [
    "EMPTY_VAULT_QUOTE",
    "HISTORY_DAYS",
    "HISTORY_LIMIT",
    "DuplicateQuote",
    "LocalVault",
    "VaultCatalog",
    "VaultStats",
    "load_bundled_catalog",
    "parse_quotes",
]
