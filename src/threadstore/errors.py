"""Error kinds shared by the cache, document engine, and interaction layer."""

from __future__ import annotations


class ThreadStoreError(Exception):
    """Base class for all threadstore errors."""


class StoreUnavailable(ThreadStoreError):
    """A Record Store call failed (network, permissions, missing channel)."""

    def __init__(self, message: str, *, stream_id: int | None = None) -> None:
        super().__init__(message)
        self.stream_id = stream_id


class ValidationFailure(ThreadStoreError):
    """Text submitted as a document is not a well-formed JSON object."""


class SizeLimitExceeded(ThreadStoreError):
    """A document or a single line is too large for its target surface."""

    def __init__(self, message: str, *, size: int, limit: int) -> None:
        super().__init__(message)
        self.size = size
        self.limit = limit


class ReconciliationConflict(ThreadStoreError):
    """Both sides changed between read and write.

    Never raised: reconciliation always picks the side named by the lock flag.
    """


class DocumentNotFound(ThreadStoreError, KeyError):
    """No document with the requested name has been initialized."""

    def __str__(self) -> str:
        return Exception.__str__(self)


__all__ = [
    "ThreadStoreError",
    "StoreUnavailable",
    "ValidationFailure",
    "SizeLimitExceeded",
    "ReconciliationConflict",
    "DocumentNotFound",
]
