from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping


class LockState(str, Enum):
    """Which side wins when the local file and the remote thread disagree."""

    LOCKED = "locked"  # remote thread is authoritative
    UNLOCKED = "unlocked"  # local file is authoritative

    @property
    def display(self) -> str:
        if self is LockState.LOCKED:
            return "🟩 `Locked: using the remote copy`"
        return "🟥 `Unlocked: using the local file`"

    @classmethod
    def from_record(cls, fields: Mapping[str, str], text: str) -> "LockState":
        """Read the state from a locator record, falling back to its glyph."""

        raw = fields.get(LOCK_STATE_FIELD)
        if raw is not None:
            try:
                return cls(raw)
            except ValueError:
                pass
        return cls.LOCKED if text.startswith("🟩") else cls.UNLOCKED


LOCK_STATE_FIELD = "lock_state"


@dataclass
class Document:
    """A local JSON file and the thread mirroring it."""

    name: str
    local_path: Path
    lock_state: LockState = LockState.UNLOCKED
    data: Dict[str, Any] = field(default_factory=dict)
    canonical_form: str = ""
    fragments: List[str] = field(default_factory=list)
    locator_record_id: int | None = None
    control_record_id: int | None = None
    substream_id: int | None = None
