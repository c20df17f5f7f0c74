"""Calendar date keys in a caller-chosen time reference.

Every date-keyed operation (daily pick, once-per-day enrichment, vault history
window) works on ``YYYY-MM-DD`` strings. The time reference is one of
``"local"``, ``"utc"`` or an IANA zone name such as ``"Europe/Berlin"``. An
unknown zone name logs a warning and falls back to the local clock.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

LOGGER = logging.getLogger(__name__)

LOCAL = "local"
UTC = "utc"


def resolve_timezone(mode: Optional[str]) -> Optional[tzinfo]:
    """Map a timezone preference to a ``tzinfo``; ``None`` means local time."""
    if not mode or mode.lower() == LOCAL:
        return None
    if mode.lower() == UTC:
        return dt_timezone.utc
    try:
        return ZoneInfo(mode)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        LOGGER.warning(f"Invalid time zone {mode!r}, using local time: {exc}")
        return None


def now_in(mode: Optional[str], clock: Callable[[], float]) -> datetime:
    tz = resolve_timezone(mode)
    if tz is None:
        return datetime.fromtimestamp(clock()).astimezone()
    return datetime.fromtimestamp(clock(), tz=tz)


def date_key(when: datetime) -> str:
    return when.strftime("%Y-%m-%d")


def weekday_index(when: datetime) -> int:
    """Day of week with Sunday as 0."""
    return (when.weekday() + 1) % 7


__all__ = (
    "LOCAL",
    "UTC",
    "date_key",
    "now_in",
    "resolve_timezone",
    "weekday_index",
)
