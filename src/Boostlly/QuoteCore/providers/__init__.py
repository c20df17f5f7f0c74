"""
Remote quote providers.

One module per source; :func:`build_providers` instantiates the enabled ones
from a :class:`~Boostlly.QuoteCore.config.QuoteCoreConfig` around a shared
``httpx.Client``.

Example:
    from Boostlly.QuoteCore.config import load_config
    from Boostlly.QuoteCore.net import build_http_client
    from Boostlly.QuoteCore.providers import build_providers

    config = load_config()
    providers = build_providers(config, build_http_client(config.http))
"""

from __future__ import annotations

from typing import Dict, Type

import httpx

from ..config.models import QuoteCoreConfig
from ..types import Source
from .base import HttpQuoteProvider, QuoteProvider, normalize_quote
from .dummyjson import DummyJsonProvider
from .favqs import FavQsProvider
from .programming import ProgrammingQuotesProvider
from .quotable import QuotableProvider
from .quotegarden import QuoteGardenProvider
from .stoic import StoicQuotesProvider
from .theysaidso import TheySaidSoProvider
from .zenquotes import ZenQuotesProvider

PROVIDER_CLASSES: Dict[Source, Type[HttpQuoteProvider]] = {
    cls.source: cls
    for cls in (
        ZenQuotesProvider,
        QuotableProvider,
        FavQsProvider,
        TheySaidSoProvider,
        QuoteGardenProvider,
        StoicQuotesProvider,
        ProgrammingQuotesProvider,
        DummyJsonProvider,
    )
}


def build_providers(config: QuoteCoreConfig, client: httpx.Client) -> Dict[Source, QuoteProvider]:
    """Instantiate a provider for every enabled remote source."""
    providers: Dict[Source, QuoteProvider] = {}
    for source in config.enabled_sources():
        settings = config.source_settings(source)
        providers[source] = PROVIDER_CLASSES[source](
            client,
            base_url=settings.base_url,
            timeout_s=settings.timeout_s,
            retry=config.retry,
            api_key=settings.api_key,
        )
    return providers


__all__ = [
    "PROVIDER_CLASSES",
    "DummyJsonProvider",
    "FavQsProvider",
    "HttpQuoteProvider",
    "ProgrammingQuotesProvider",
    "QuotableProvider",
    "QuoteGardenProvider",
    "QuoteProvider",
    "StoicQuotesProvider",
    "TheySaidSoProvider",
    "ZenQuotesProvider",
    "build_providers",
    "normalize_quote",
]
