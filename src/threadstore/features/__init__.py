"""
Feature registry and event fan-out.

A feature is any class registered with :func:`register_feature` that
implements one or more capability protocols below. Event hooks call
:func:`dispatch` with a capability; every registered feature implementing it
runs in registration order. A feature that raises is logged and skipped so the
remaining features still run.

Modules inside ``features/handlers`` are imported automatically::

    from threadstore.features import register_feature

    @register_feature
    class Announcer:
        async def on_ready(self, bot) -> None: ...
"""

from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from pkgutil import iter_modules
from typing import Any, List, Protocol, Type, runtime_checkable

from threadstore.store import Record

logger = logging.getLogger(__name__)


@runtime_checkable
class OnReady(Protocol):
    async def on_ready(self, bot: Any) -> None: ...


@runtime_checkable
class OnRecordCreated(Protocol):
    async def on_record_created(self, bot: Any, record: Record) -> None: ...


@runtime_checkable
class OnRecordUpdated(Protocol):
    async def on_record_updated(self, bot: Any, record: Record) -> None: ...


@runtime_checkable
class OnRecordDeleted(Protocol):
    async def on_record_deleted(self, bot: Any, stream_id: int, record_id: int) -> None: ...


_CAPABILITY_METHODS = {
    OnReady: "on_ready",
    OnRecordCreated: "on_record_created",
    OnRecordUpdated: "on_record_updated",
    OnRecordDeleted: "on_record_deleted",
}

_FEATURES: List[object] = []


def register_feature(cls: Type) -> Type:
    """Decorator instantiating ``cls`` and adding it to the registry."""

    _FEATURES.append(cls())
    return cls


def features() -> List[object]:
    return list(_FEATURES)


async def dispatch(capability: Type, *args: Any) -> int:
    """
    Invoke ``capability`` on every feature implementing it.

    :returns: Number of features that completed without raising.
    """
    method = _CAPABILITY_METHODS[capability]
    completed = 0
    for feature in list(_FEATURES):
        if not isinstance(feature, capability):
            continue
        try:
            await getattr(feature, method)(*args)
        except Exception:
            logger.exception(
                "Feature %s failed during %s", type(feature).__name__, method
            )
            continue
        completed += 1
    return completed


_pkg_path = Path(__file__).resolve().parent / "handlers"
for _, modname, _ in iter_modules([str(_pkg_path)]):
    if modname.startswith("_"):
        continue
    import_module(f"{__name__}.handlers.{modname}")


__all__ = [
    "OnReady",
    "OnRecordCreated",
    "OnRecordUpdated",
    "OnRecordDeleted",
    "dispatch",
    "features",
    "register_feature",
]
