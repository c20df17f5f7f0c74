"""Weighted primary-source choice and day-rotated fallback chains.

``select_primary_source`` is a weighted roulette over the remote sources in
:data:`WEIGHTED_ORDER`. ``get_fallback_chain`` returns every other remote
source, starting from the source scheduled for the current weekday, so that
over a week each provider takes a turn near the front of the chain.

The local vault never appears here; the orchestrator reaches it only when
everything in the chain has failed.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .types import Source

LOGGER = logging.getLogger(__name__)

DEFAULT_SOURCE_WEIGHTS: Dict[Source, float] = {
    Source.ZENQUOTES: 0.25,
    Source.QUOTABLE: 0.20,
    Source.FAVQS: 0.15,
    Source.THEY_SAID_SO: 0.0,
    Source.QUOTEGARDEN: 0.15,
    Source.STOIC: 0.15,
    Source.PROGRAMMING: 0.10,
    Source.DUMMYJSON: 0.0,
}

WEIGHTED_ORDER: Tuple[Source, ...] = (
    Source.ZENQUOTES,
    Source.QUOTABLE,
    Source.FAVQS,
    Source.THEY_SAID_SO,
    Source.QUOTEGARDEN,
    Source.STOIC,
    Source.PROGRAMMING,
)

FALLBACK_ORDER: Tuple[Source, ...] = (
    Source.DUMMYJSON,
    Source.ZENQUOTES,
    Source.QUOTABLE,
    Source.FAVQS,
    Source.QUOTEGARDEN,
    Source.STOIC,
    Source.PROGRAMMING,
    Source.THEY_SAID_SO,
)


@dataclass(frozen=True)
class DayAssignment:
    day: int
    day_name: str
    source: Source
    description: str


WEEKLY_SCHEDULE: Tuple[DayAssignment, ...] = (
    DayAssignment(0, "Sunday", Source.DUMMYJSON, "Curated DummyJSON collection"),
    DayAssignment(1, "Monday", Source.ZENQUOTES, "Mindful start to the week"),
    DayAssignment(2, "Tuesday", Source.QUOTABLE, "Broad mix of famous quotes"),
    DayAssignment(3, "Wednesday", Source.FAVQS, "Community favourites"),
    DayAssignment(4, "Thursday", Source.STOIC, "Stoic philosophy"),
    DayAssignment(5, "Friday", Source.QUOTEGARDEN, "Garden of inspiration"),
    DayAssignment(6, "Saturday", Source.PROGRAMMING, "Quotes for builders"),
)


def scheduled_source(weekday: int) -> Source:
    """Source assigned to ``weekday`` (Sunday = 0)."""
    return WEEKLY_SCHEDULE[weekday % 7].source


class SourceSelector:
    """Chooses the primary source and the fallback chain for a call.

    Args:
        weights: Weight per remote source; missing sources weigh 0.
        order: Stable walk order for the weighted roulette.
        rng: Random generator (seed it in tests).
    """

    def __init__(
        self,
        weights: Optional[Mapping[Source, float]] = None,
        *,
        order: Sequence[Source] = WEIGHTED_ORDER,
        fallback_order: Sequence[Source] = FALLBACK_ORDER,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.weights: Dict[Source, float] = dict(DEFAULT_SOURCE_WEIGHTS if weights is None else weights)
        self.order: Tuple[Source, ...] = tuple(s for s in order if s.is_remote)
        self.fallback_order: Tuple[Source, ...] = tuple(
            dict.fromkeys(s for s in fallback_order if s.is_remote)
        )
        self._rng = rng or random.Random()
        total = sum(self.weights.get(s, 0.0) for s in self.order)
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            LOGGER.warning(f"Source weights sum to {total:.3f}, not 1.0; selection may default to {self._first()}")

    def _first(self) -> Source:
        return self.order[0] if self.order else Source.ZENQUOTES

    def select_primary_source(self) -> Source:
        """Weighted roulette; the first source is returned when the draw runs off the end."""
        draw = self._rng.random()
        cumulative = 0.0
        for source in self.order:
            cumulative += max(self.weights.get(source, 0.0), 0.0)
            if draw <= cumulative and self.weights.get(source, 0.0) > 0:
                return source
        return self._first()

    def get_fallback_chain(self, primary: "Source | str | None", weekday: int) -> List[Source]:
        """Every other remote source, rotated to start at ``weekday``'s scheduled source."""
        base = list(self.fallback_order)
        if not base:
            return []
        start = scheduled_source(weekday)
        offset = base.index(start) if start in base else weekday % len(base)
        rotated = base[offset:] + base[:offset]
        primary_source = Source.parse(primary) if primary is not None else None
        return [s for s in rotated if s is not primary_source]

    def attempt_order(self, weekday: int, primary: Optional[Source] = None) -> List[Source]:
        """Primary followed by its fallback chain."""
        first = primary or self.select_primary_source()
        return [first] + self.get_fallback_chain(first, weekday)


__all__ = (
    "DEFAULT_SOURCE_WEIGHTS",
    "FALLBACK_ORDER",
    "WEEKLY_SCHEDULE",
    "WEIGHTED_ORDER",
    "DayAssignment",
    "SourceSelector",
    "scheduled_source",
)
