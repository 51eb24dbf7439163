"""
Least-frequently-used selection over values already observed in a stream.

Features that post from a fixed pool (facts, images, prompts) read what they
posted before from the cache and call :func:`pick_next` so that every pool
entry is used before any repeats, and repeats stay evenly spread.
"""

from __future__ import annotations

import random
from collections import Counter
from typing import Hashable, Iterable, Set, TypeVar

V = TypeVar("V", bound=Hashable)


def least_frequent(values: Iterable[V]) -> Set[V]:
    """
    Return the values that occur the fewest times.

    ``least_frequent(["a", "a", "b", "b", "c", "c", "c"]) == {"a", "b"}``;
    an empty input returns an empty set.
    """
    counts = Counter(values)
    if not counts:
        return set()
    fewest = min(counts.values())
    return {value for value, count in counts.items() if count == fewest}


def candidates(pool: Iterable[V], seen: Iterable[V]) -> Set[V]:
    """Novel pool values first; least frequent history values once none are left."""

    seen = list(seen)
    potential = set(pool) - set(seen)
    if not potential:
        potential = least_frequent(seen)
    return potential


def pick_next(
    pool: Iterable[V], seen: Iterable[V], *, rng: random.Random | None = None
) -> V | None:
    """
    Pick a uniformly random value from :func:`candidates`.

    :param pool: Every value the caller may produce.
    :param seen: Values already produced, in any order.
    :param rng: Optional random source; seeded instances give repeatable picks.
    :returns: The chosen value, or ``None`` when there is nothing to choose.
    """
    pool = list(pool)
    seen = list(seen)
    options = candidates(pool, seen)
    if not options:
        return None
    # Deterministic ordering so a seeded rng always picks the same value.
    ordered = [v for v in dict.fromkeys(pool + seen) if v in options]
    return (rng or random).choice(ordered)


__all__ = ["least_frequent", "candidates", "pick_next"]
