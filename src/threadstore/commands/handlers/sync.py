from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from threadstore.config import documents as documents_cfg
from threadstore.errors import ThreadStoreError

from .. import register_cog

logger = logging.getLogger(__name__)

UNKNOWN_REPLY = "Unknown document: {name}. Known documents: {known}"


def known_names(documents) -> list[str]:
    """Configured document names followed by any other loaded ones."""

    return list(dict.fromkeys([*documents_cfg.NAMES, *documents.names()]))


async def sync_documents(documents, names: list[str]) -> tuple[list[str], list[str]]:
    """Re-run reconciliation for ``names``; returns (synced, failed)."""

    synced: list[str] = []
    failed: list[str] = []
    for name in names:
        try:
            await documents.initialize(name)
        except ThreadStoreError:
            failed.append(name)
        else:
            synced.append(name)
    return synced, failed


@register_cog
class Sync(commands.Cog):
    """Reconcile documents with their threads on demand."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="sync", description="Synchronize documents with their threads.")
    @app_commands.describe(name="Document to synchronize (all loaded documents when empty)")
    async def sync(self, interaction: discord.Interaction, name: str | None = None) -> None:
        known = known_names(self.bot.documents)
        if name and name not in known:
            logger.info("Refused /sync of unknown document %r by %s", name, interaction.user.id)
            await interaction.response.send_message(
                UNKNOWN_REPLY.format(name=name, known=", ".join(known) or "none"),
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True, thinking=True)

        names = [name] if name else self.bot.documents.names()
        synced, failed = await sync_documents(self.bot.documents, names)

        lines = []
        if synced:
            lines.append(f"Synchronized: {', '.join(synced)}")
        if failed:
            lines.append(f"Failed (see logs): {', '.join(failed)}")
        await interaction.followup.send("\n".join(lines) or "No documents loaded.", ephemeral=True)
