"""They Said So provider (https://quotes.rest).

Only the quote of the day is available without a subscription. An API key,
when configured, is sent in the ``X-TheySaidSo-Api-Secret`` header.
"""

from __future__ import annotations

from typing import Mapping

from ..types import Quote, Source
from .base import HttpQuoteProvider


class TheySaidSoProvider(HttpQuoteProvider):
    source = Source.THEY_SAID_SO
    default_base_url = "https://quotes.rest"
    health_path = "/qod?language=en"

    def _headers(self) -> Mapping[str, str]:
        return {"X-TheySaidSo-Api-Secret": self.api_key} if self.api_key else {}

    def random(self) -> Quote:
        payload = self._get_json("/qod", {"language": "en"})
        try:
            item = payload["contents"]["quotes"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise self._payload_error("expected contents.quotes[0]") from exc
        return self._quote(
            text=item.get("quote"),
            author=item.get("author"),
            quote_id=item.get("id"),
            category=item.get("category"),
            tags=item.get("tags") or (),
        )
