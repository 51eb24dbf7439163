"""
Document synchronization package.

Modules
=======

``engine``
    :class:`~threadstore.documents.engine.DocumentEngine`, which reconciles a
    local JSON file with its fragment thread and runs the edit workflow.
``model``
    The :class:`Document` record and the :class:`LockState` flag.
``codec``
    Canonical serialization, line-boundary chunking and fence wrapping.
``controls``
    Record payloads (locator flag, title, buttons) and component ids.
``backups``
    ``name (N).ext`` backup naming and renaming.
"""

from .engine import DocumentEngine
from .model import Document, LockState

__all__ = ["Document", "DocumentEngine", "LockState"]
