"""
Slash command cogs for document maintenance.

Cogs live in ``commands/handlers`` and register themselves by name::

    from threadstore.commands import register_cog

    @register_cog
    class Sync(commands.Cog): ...

The handler modules are imported when this package is, and
``ThreadStoreBot.setup_hook`` calls :func:`setup` to attach them before the
command tree is synced.
"""

from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from pkgutil import iter_modules
from typing import Dict, List, Type

from discord.ext import commands as commands_ext

logger = logging.getLogger(__name__)

_COGS: Dict[str, Type[commands_ext.Cog]] = {}


def register_cog(cls: Type[commands_ext.Cog]) -> Type[commands_ext.Cog]:
    """Register ``cls`` under its class name; names must be unique."""

    if not issubclass(cls, commands_ext.Cog):
        raise TypeError(f"{cls.__name__} is not a discord.ext.commands.Cog")
    existing = _COGS.get(cls.__name__)
    if existing is not None and existing is not cls:
        raise ValueError(f"A cog named {cls.__name__} is already registered")
    _COGS[cls.__name__] = cls
    return cls


def registered_cogs() -> List[str]:
    return list(_COGS)


async def setup(bot: commands_ext.Bot) -> List[str]:
    """Attach every registered cog missing from ``bot``; returns their names."""

    attached: List[str] = []
    for name, cog_cls in _COGS.items():
        if bot.get_cog(name) is not None:
            continue
        await bot.add_cog(cog_cls(bot))
        attached.append(name)

    logger.info("Attached command cog(s): %s", ", ".join(attached) or "none")
    return attached


_pkg_path = Path(__file__).resolve().parent / "handlers"
for _, modname, _ in iter_modules([str(_pkg_path)]):
    if not modname.startswith("_"):
        import_module(f"{__name__}.handlers.{modname}")


__all__ = ["register_cog", "registered_cogs", "setup"]
