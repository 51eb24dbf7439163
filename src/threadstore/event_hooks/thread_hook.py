import discord

import logging

logger = logging.getLogger(__name__)


async def handle(client: discord.Client, thread: discord.Thread):
    """
    Refresh the starter record of a thread that was created or deleted.
    - client: Discord bot client instance
    - thread: The thread whose lifecycle changed (its id is the starter message id)
    """
    if thread.parent_id is None:
        return
    logger.info(f"Thread {thread.name} (ID: {thread.id}) changed in channel {thread.parent_id}")
    await client.stream_cache.on_substream_lifecycle_changed(thread.parent_id, thread.id)
