"""
Busy tracking for component interactions.

Clicking a button twice before the first click finishes would run its side
effects (file renames, record sends) twice. A :class:`BusyGuard` remembers
which ``(action, target record, actor)`` triples are currently being handled.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, NamedTuple, Set


class BusyKey(NamedTuple):
    action: str
    target_id: int
    actor_id: int


class BusyGuard:
    def __init__(self) -> None:
        self._busy: Set[BusyKey] = set()

    def is_busy(self, key: BusyKey) -> bool:
        return key in self._busy

    @asynccontextmanager
    async def claim(self, key: BusyKey) -> AsyncIterator[bool]:
        """
        Mark ``key`` busy for the duration of the block.

        Yields ``False`` without claiming anything when ``key`` is already busy.
        """
        if key in self._busy:
            yield False
            return
        self._busy.add(key)
        try:
            yield True
        finally:
            self._busy.discard(key)
