"""Numbered backups of document files: ``name (N).ext``."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)


def next_backup_path(path: Path) -> Path:
    """
    Return ``path`` with a numeric suffix one greater than any existing backup.

    ``settings.json`` with ``settings (1).json`` and ``settings (4).json`` on
    disk yields ``settings (5).json``. Gaps are never reused, so an older
    backup is never overwritten.
    """
    pattern = re.compile(
        rf"^{re.escape(path.stem)} \((\d+)\){re.escape(path.suffix)}$"
    )
    highest = 0
    if path.parent.is_dir():
        for sibling in path.parent.iterdir():
            match = pattern.match(sibling.name)
            if match:
                highest = max(highest, int(match.group(1)))
    return path.with_name(f"{path.stem} ({highest + 1}){path.suffix}")


def backup(path: Path) -> Path | None:
    """Rename ``path`` to its next backup name; returns ``None`` if missing."""

    if not path.exists():
        return None
    target = next_backup_path(path)
    path.rename(target)
    logger.info('Renamed "%s" to "%s"', path.name, target.name)
    return target
