"""
Record Store contract.

The cache and the document engine never talk to Discord directly; they depend
on :class:`RecordStore`. :mod:`threadstore.clients.record_store` provides the
discord.py implementation and the tests provide an in-memory fake.

Every method raises :class:`~threadstore.errors.StoreUnavailable` when the
underlying call fails.
"""

from __future__ import annotations

from typing import List, Protocol

from .model import Control, Record, RecordContent


class RecordStore(Protocol):
    """Paginated create/read/edit/delete access to records in streams."""

    async def fetch_page(
        self, stream_id: int, *, limit: int, before: int | None = None
    ) -> List[Record]:
        """Return up to ``limit`` records older than ``before``, newest first."""

    async def fetch_record(self, stream_id: int, record_id: int) -> Record:
        """Return the current state of one record."""

    async def create_record(self, stream_id: int, content: RecordContent) -> Record:
        """Append a new record to ``stream_id``."""

    async def edit_record(
        self, stream_id: int, record_id: int, content: RecordContent
    ) -> Record:
        """Replace the content of an existing record."""

    async def delete_record(self, stream_id: int, record_id: int) -> None:
        """Delete a record."""

    async def attach_substream(self, stream_id: int, record_id: int, name: str) -> int:
        """Start a named sub-stream on ``record_id`` and return its stream id."""

    async def fetch_substream_of(self, stream_id: int, record_id: int) -> int | None:
        """Return the sub-stream id attached to ``record_id``, if any."""

    async def detach_substream(self, stream_id: int, record_id: int) -> None:
        """Delete the sub-stream attached to ``record_id``, if any."""


__all__ = ["Control", "Record", "RecordContent", "RecordStore"]
