"""Route component interactions (buttons, modals) to their handlers."""

from __future__ import annotations

import logging

import discord

from threadstore import interactions

logger = logging.getLogger(__name__)


async def handle(client: discord.Client, interaction: discord.Interaction) -> None:
    if interaction.type not in (
        discord.InteractionType.component,
        discord.InteractionType.modal_submit,
    ):
        return

    try:
        await interactions.dispatch(client, interaction)
    except Exception:
        logger.exception(
            "Interaction %s failed in channel %s",
            (interaction.data or {}).get("custom_id"),
            interaction.channel_id,
        )
