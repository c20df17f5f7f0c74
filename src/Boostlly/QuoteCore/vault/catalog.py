"""Loader for the bundled quote collection and category tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from ..types import LOCAL_SOURCE, Quote

LOGGER = logging.getLogger(__name__)

_DATA_PACKAGE = "Boostlly.QuoteCore.vault"


@dataclass(frozen=True)
class VaultCatalog:
    """Quotes plus the alias and group tables used to filter them."""

    quotes: Tuple[Quote, ...]
    aliases: Mapping[str, str] = field(default_factory=dict)
    groups: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


def _read_yaml(name: str) -> Any:
    text = resources.files(_DATA_PACKAGE).joinpath("data", name).read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}


def parse_quotes(rows: List[Mapping[str, Any]]) -> Tuple[Quote, ...]:
    """Build quotes from mapping rows, skipping malformed ones."""
    quotes: List[Quote] = []
    for row in rows:
        try:
            text = str(row.get("text") or "").strip()
            if not text:
                raise ValueError("empty text")
            quotes.append(
                Quote(
                    id=str(row["id"]),
                    text=text,
                    author=str(row.get("author") or "Unknown"),
                    category=str(row.get("category") or "🌟 General"),
                    tags=tuple(str(t) for t in row.get("tags") or ()),
                    source=LOCAL_SOURCE,
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            LOGGER.warning(f"Skipping malformed vault entry {row!r}: {exc}")
    return tuple(quotes)


@lru_cache(maxsize=1)
def load_bundled_catalog() -> VaultCatalog:
    quotes_doc = _read_yaml("quotes.yaml")
    categories_doc = _read_yaml("categories.yaml")
    aliases: Dict[str, str] = {
        str(k).strip().lower(): str(v) for k, v in (categories_doc.get("aliases") or {}).items()
    }
    groups: Dict[str, Tuple[str, ...]] = {
        str(k).strip().lower(): tuple(str(c) for c in v)
        for k, v in (categories_doc.get("groups") or {}).items()
    }
    catalog = VaultCatalog(
        quotes=parse_quotes(quotes_doc.get("quotes") or []),
        aliases=aliases,
        groups=groups,
    )
    LOGGER.debug(f"Loaded {len(catalog.quotes)} bundled quotes")
    return catalog


__all__ = ("VaultCatalog", "load_bundled_catalog", "parse_quotes")
