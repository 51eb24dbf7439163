"""
Value types mirrored from the Record Store.

A :class:`Record` is one message in a stream (channel or thread). Records are
immutable snapshots: an edit on the remote side produces a new ``Record`` with
the same ``id`` which replaces the old one in the cache.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Mapping, Tuple


@dataclass(frozen=True)
class Control:
    """A button attached to a record."""

    custom_id: str
    label: str
    emoji: str | None = None
    style: str = "secondary"  # primary | secondary | success | danger
    disabled: bool = False


@dataclass(frozen=True)
class RecordContent:
    """Payload for creating or editing a record."""

    text: str
    fields: Mapping[str, str] = field(default_factory=dict)
    controls: Tuple[Control, ...] = ()


@dataclass(frozen=True)
class Record:
    id: int
    stream_id: int
    author_id: int
    created_at: datetime.datetime
    content: str = ""
    fields: Mapping[str, str] = field(default_factory=dict)
    controls: Tuple[Control, ...] = ()
    has_substream: bool = False
    substream_id: int | None = None
    substream_name: str | None = None

    def control(self, custom_id: str) -> Control | None:
        """Return the control with ``custom_id`` if this record carries one."""

        for ctrl in self.controls:
            if ctrl.custom_id == custom_id:
                return ctrl
        return None


__all__ = ["Control", "Record", "RecordContent"]
