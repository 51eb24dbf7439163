"""
Stream record cache package.

Modules
=======

``manager``
    Defines :class:`~threadstore.memory.cache.manager.StreamCache`, the cache
    coordinator that hydrates streams on first read, applies Record lifecycle
    notifications, and evicts least recently used streams.
``stream_state``
    Provides :class:`~threadstore.memory.cache.stream_state.StreamCacheState`
    to encapsulate one stream's id-ordered record buffer.
``hydration``
    Pagination routine that pulls a stream's full history from the Record
    Store.
``utils``
    Internal logging helpers used by :mod:`manager` to render short record
    previews.
"""

from .manager import StreamCache

__all__ = ["StreamCache"]
