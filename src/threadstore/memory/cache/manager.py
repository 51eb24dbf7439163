"""Cache manager coordinating stream state, hydration, and eviction."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List

from threadstore.errors import StoreUnavailable
from threadstore.store import Record, RecordStore

from .hydration import paginate
from .stream_state import StreamCacheState
from .utils import _record_preview

logger = logging.getLogger(__name__)

Predicate = Callable[[Record], bool]


class StreamCache:
    """
    Lazily hydrated, event-maintained mirror of stream history.

    Each stream is paginated at most once while it stays cached; afterwards the
    Record lifecycle notifications keep it current. Streams are evicted least
    recently used first once ``max_streams`` or ``max_records`` is exceeded.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        probe_size: int = 1,
        page_size: int = 100,
        max_streams: int | None = None,
        max_records: int | None = None,
    ) -> None:
        self._store = store
        self._probe_size = probe_size
        self._page_size = page_size
        self._max_streams = max_streams
        self._max_records = max_records
        self._states: "OrderedDict[int, StreamCacheState]" = OrderedDict()
        self._locks: dict[int, asyncio.Lock] = {}

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    async def get_records(self, stream_id: int, *, strict: bool = False) -> List[Record]:
        """
        Return every record of ``stream_id`` ordered newest -> oldest.

        :param stream_id: Channel or thread id.
        :param strict: Raise :class:`StoreUnavailable` instead of returning an
            empty list when hydration fails.
        :returns: A copy of the cached sequence.
        """
        state = self._states.get(stream_id)
        if state is None:
            state = await self._hydrate(stream_id, strict=strict)
            if state is None:
                return []
        self._states.move_to_end(stream_id)
        return state.newest_first()

    async def filter_records(
        self, stream_id: int, predicate: Predicate, *, strict: bool = False
    ) -> List[Record]:
        return [r for r in await self.get_records(stream_id, strict=strict) if predicate(r)]

    async def find_record(
        self, stream_id: int, predicate: Predicate, *, strict: bool = False
    ) -> Record | None:
        for record in await self.get_records(stream_id, strict=strict):
            if predicate(record):
                return record
        return None

    def is_cached(self, stream_id: int) -> bool:
        return stream_id in self._states

    # ------------------------------------------------------------------ #
    # WRITE helpers (Record lifecycle notifications)
    # ------------------------------------------------------------------ #

    async def on_record_created(self, record: Record) -> None:
        """Add a new record to its stream if that stream is cached."""

        async with self._guard(record.stream_id) as state:
            if state is None:
                return
            added = state.insert(record)
            logger.debug(
                "Cached record %s in stream %s (%s)",
                _record_preview(record),
                record.stream_id,
                "new" if added else "replace",
            )
        self._evict(protect=record.stream_id)

    async def on_record_updated(self, record: Record) -> None:
        """Replace a cached record in place; unknown records are ignored."""

        async with self._guard(record.stream_id) as state:
            if state is not None and state.replace(record):
                logger.debug(
                    "Updated record %s in stream %s",
                    _record_preview(record),
                    record.stream_id,
                )

    async def on_record_deleted(self, stream_id: int, record_id: int) -> None:
        """Drop a record from its cached stream."""

        async with self._guard(stream_id) as state:
            if state is not None and state.remove(record_id) is not None:
                logger.debug("Removed record %s from stream %s", record_id, stream_id)

    async def on_substream_lifecycle_changed(self, stream_id: int, record_id: int) -> None:
        """
        Refresh a starter record after its sub-stream was attached or detached.

        ``has_substream`` is derived by the store, so the cached copy goes stale
        when a thread is created or deleted under it.
        """

        state = self._states.get(stream_id)
        if state is None or not state.contains(record_id):
            return
        try:
            fresh = await self._store.fetch_record(stream_id, record_id)
        except StoreUnavailable:
            logger.exception(
                "Failed to refresh starter record %s in stream %s", record_id, stream_id
            )
            return
        await self.on_record_updated(fresh)

    # ------------------------------------------------------------------ #
    # INTERNALS
    # ------------------------------------------------------------------ #

    @asynccontextmanager
    async def _guard(self, stream_id: int) -> AsyncIterator[StreamCacheState | None]:
        """Yield the stream state while no hydration of it is in progress."""

        lock = self._locks.get(stream_id)
        if lock is None:
            # Never hydrated, so nothing can be mirrored for it.
            yield None
            return
        async with lock:
            yield self._states.get(stream_id)

    async def _hydrate(self, stream_id: int, *, strict: bool) -> StreamCacheState | None:
        lock = self._locks.setdefault(stream_id, asyncio.Lock())
        async with lock:
            # Another reader may have finished hydrating while we waited.
            state = self._states.get(stream_id)
            if state is not None:
                return state
            try:
                records = await paginate(
                    self._store,
                    stream_id,
                    probe_size=self._probe_size,
                    page_size=self._page_size,
                )
            except StoreUnavailable:
                logger.error("Failed to hydrate stream %s", stream_id, exc_info=True)
                if strict:
                    raise
                return None
            state = StreamCacheState.from_newest_first(stream_id, records)
            self._states[stream_id] = state
        self._evict(protect=stream_id)
        return state

    def _total_records(self) -> int:
        return sum(len(s) for s in self._states.values())

    def _over_capacity(self) -> bool:
        if self._max_streams is not None and len(self._states) > self._max_streams:
            return True
        if self._max_records is not None and self._total_records() > self._max_records:
            return True
        return False

    def _evict(self, *, protect: int) -> None:
        """Drop least recently used streams until the bounds hold."""

        if protect in self._states:
            self._states.move_to_end(protect)
        while len(self._states) > 1 and self._over_capacity():
            stream_id, state = self._states.popitem(last=False)
            lock = self._locks.get(stream_id)
            if lock is not None and not lock.locked():
                del self._locks[stream_id]
            logger.info(
                "Evicted stream %s (%d record(s)) from cache", stream_id, len(state)
            )
