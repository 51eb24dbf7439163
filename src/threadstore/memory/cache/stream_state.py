"""
Stream-local cache state helpers.

The :class:`StreamCacheState` dataclass holds the mirrored records of a single
stream ordered by id (oldest -> newest internally) together with a parallel id
list used for binary search. Record ids are snowflakes, so id order is
creation order and any sequence of inserts, replacements and removals leaves
the state equal to what a fresh pagination would return.
Callers should only interact with this module via :class:`StreamCacheState`.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Iterable, List

from threadstore.store import Record


@dataclass
class StreamCacheState:
    """In-memory state for a hydrated stream."""

    stream_id: int
    _records: List[Record] = field(default_factory=list, repr=False)
    _ids: List[int] = field(default_factory=list, repr=False)

    @classmethod
    def from_newest_first(cls, stream_id: int, records: Iterable[Record]) -> "StreamCacheState":
        """Build a state from a pagination result (newest first)."""

        ordered = sorted(records, key=lambda r: r.id)
        return cls(stream_id, ordered, [r.id for r in ordered])

    def _position(self, record_id: int) -> int | None:
        idx = bisect_left(self._ids, record_id)
        if idx < len(self._ids) and self._ids[idx] == record_id:
            return idx
        return None

    def insert(self, record: Record) -> bool:
        """Insert ``record``; returns ``False`` when it replaced an existing id."""

        idx = self._position(record.id)
        if idx is not None:
            self._records[idx] = record
            return False
        # Live records are almost always the newest, making this an append.
        if not self._ids or record.id > self._ids[-1]:
            self._records.append(record)
            self._ids.append(record.id)
            return True
        idx = bisect_left(self._ids, record.id)
        self._records.insert(idx, record)
        self._ids.insert(idx, record.id)
        return True

    def replace(self, record: Record) -> bool:
        """Replace the record sharing ``record.id``; no-op when absent."""

        idx = self._position(record.id)
        if idx is None:
            return False
        self._records[idx] = record
        return True

    def remove(self, record_id: int) -> Record | None:
        """Remove and return the record with ``record_id`` if cached."""

        idx = self._position(record_id)
        if idx is None:
            return None
        del self._ids[idx]
        return self._records.pop(idx)

    def contains(self, record_id: int) -> bool:
        return self._position(record_id) is not None

    def get(self, record_id: int) -> Record | None:
        idx = self._position(record_id)
        return None if idx is None else self._records[idx]

    def newest_first(self) -> List[Record]:
        """Return a copy of the records ordered newest -> oldest."""

        return self._records[::-1]

    def __len__(self) -> int:
        return len(self._records)
