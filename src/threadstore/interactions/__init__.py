"""
Auto-discovery & registry for component interaction handlers.

Any module inside ``interactions/handlers`` that defines::

    from threadstore.interactions import register

    @register
    class MyButtonHandler:
        custom_id = "MY_BUTTON"

        @staticmethod
        async def handle(bot, interaction: discord.Interaction) -> None: ...

is picked up automatically at import-time. :func:`dispatch` routes button
clicks and modal submissions by ``custom_id`` and refuses repeated triggers of
the same action on the same record by the same user while one is running.
"""

from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from pkgutil import iter_modules
from typing import Any, Dict, Protocol

import discord

from .busy import BusyGuard, BusyKey

logger = logging.getLogger(__name__)

BUSY_REPLY = "Please wait, your previous request is still being processed."


class ComponentHandler(Protocol):
    """Protocol for component handler classes."""

    custom_id: str

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        """Coroutine invoked when a component with ``custom_id`` is used.

        :param bot: Running bot exposing ``documents`` and ``stream_cache``.
        :param interaction: The button or modal interaction.
        """


_REGISTRY: Dict[str, ComponentHandler] = {}
_BUSY = BusyGuard()


def register(cls: ComponentHandler):
    """Decorator that registers a ``ComponentHandler`` implementation.

    :param cls: Class implementing the handler protocol.
    :returns: The class unchanged.
    """
    _REGISTRY[cls.custom_id] = cls
    return cls


def get(custom_id: str) -> ComponentHandler | None:
    """Return handler class for ``custom_id`` or ``None``."""
    return _REGISTRY.get(custom_id)


def all_handlers() -> Dict[str, ComponentHandler]:
    """Return copy of the handler registry."""
    return dict(_REGISTRY)


def busy_key(custom_id: str, interaction: discord.Interaction) -> BusyKey:
    message = getattr(interaction, "message", None)
    target = getattr(message, "id", None) or getattr(interaction, "channel_id", None) or 0
    user = getattr(interaction, "user", None)
    return BusyKey(custom_id, int(target), int(getattr(user, "id", 0) or 0))


async def dispatch(
    bot: Any, interaction: discord.Interaction, guard: BusyGuard | None = None
) -> bool:
    """
    Run the handler registered for the interaction's ``custom_id``.

    Returns ``True`` if a handler owned the interaction.
    """
    data = getattr(interaction, "data", None) or {}
    custom_id = data.get("custom_id")
    handler = get(custom_id) if custom_id else None
    if handler is None:
        return False

    guard = guard or _BUSY
    key = busy_key(custom_id, interaction)
    async with guard.claim(key) as acquired:
        if not acquired:
            logger.info("Ignoring repeated %s on %s by %s", *key)
            await interaction.response.send_message(BUSY_REPLY, ephemeral=True)
            return True
        logger.info("Dispatching %s on %s by %s", *key)
        await handler.handle(bot, interaction)
    return True


# ------------------------------------------------------------------ #
# Auto-import sibling modules to populate registry
# ------------------------------------------------------------------ #
_pkg_path = Path(__file__).resolve().parent / "handlers"
for _, modname, _ in iter_modules([str(_pkg_path)]):
    if modname.startswith("_"):
        continue
    import_module(f"{__name__}.handlers.{modname}")


__all__ = ["BusyGuard", "BusyKey", "ComponentHandler", "dispatch", "get", "register"]
