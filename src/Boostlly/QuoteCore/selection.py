"""Deterministic selection primitives.

``pick`` maps a ``YYYY-MM-DD`` key onto a list index with a djb2 rolling hash,
so every process that holds the same list agrees on "today's" item without any
shared state. ``mulberry32`` and ``seeded_shuffle`` give the vault a reproducible
permutation for a given seed.

The arithmetic reproduces 32-bit integer semantics (``<<`` truncated to a
signed 32-bit value, ``imul`` wrap-around) so results are stable across
platforms and match the keys already handed out to existing users.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, TypeVar

from .types import NO_QUOTES, Quote

T = TypeVar("T")

DJB2_SEED = 5381
_MASK32 = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def djb2_hash(text: str) -> int:
    """Rolling hash of ``text``: ``hash = int32(hash << 5) + hash + code``, absolute value."""
    h = DJB2_SEED
    for ch in text:
        h = _to_int32(_to_int32(h) << 5) + h + ord(ch)
    return abs(h)


def pick(items: Sequence[T], date_key: str) -> Optional[T]:
    """Return the item for ``date_key``, or ``None`` when ``items`` is empty."""
    if not items:
        return None
    return items[djb2_hash(date_key) % len(items)]


def pick_quote(quotes: Sequence[Quote], date_key: str) -> Quote:
    chosen = pick(quotes, date_key)
    return NO_QUOTES if chosen is None else chosen


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def mulberry32(seed: int) -> Callable[[], float]:
    """Seeded generator of floats in ``[0, 1)``."""
    state = seed & _MASK32

    def _next() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = _imul(state ^ (state >> 15), state | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    return _next


def seeded_shuffle(items: Sequence[T], seed: int) -> List[T]:
    """Fisher–Yates shuffle driven by :func:`mulberry32`; the input is not modified."""
    out = list(items)
    rnd = mulberry32(seed)
    for i in range(len(out) - 1, 0, -1):
        j = int(rnd() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


__all__ = (
    "DJB2_SEED",
    "djb2_hash",
    "mulberry32",
    "pick",
    "pick_quote",
    "seeded_shuffle",
)
