import discord

from threadstore import features

import logging

logger = logging.getLogger(__name__)


async def handle(client: discord.Client):
    """Bind the bot identity and let features run their startup work."""
    logger.info(f"Logged in as {client.user.name} (ID: {client.user.id})")

    # Only records the bot authored count as fragments or locators.
    client.documents.author_id = client.user.id

    completed = await features.dispatch(features.OnReady, client)
    logger.info("Ready hooks completed for %d feature(s)", completed)
