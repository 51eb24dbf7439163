"""Discord bot bootstrap utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import discord
from discord.ext import commands as discord_commands

from threadstore import commands as ts_commands
from threadstore.config import cache as cache_cfg
from threadstore.config import core
from threadstore.config import documents as documents_cfg
from threadstore.documents import DocumentEngine
from threadstore.event_hooks import (
    interaction_hook,
    message_hook,
    ready_hook,
    thread_hook,
)
from threadstore.memory.cache import StreamCache

from .record_store import DiscordRecordStore

logger = logging.getLogger(__name__)

# --- Intents --------------------------------------------------------------- #
intents = discord.Intents.default()
intents.message_content = True


class ThreadStoreBot(discord_commands.Bot):
    """Discord bot owning the record store, stream cache and document engine."""

    def __init__(self) -> None:
        super().__init__(command_prefix=discord_commands.when_mentioned, intents=intents)
        self.record_store = DiscordRecordStore(self)
        self.stream_cache = StreamCache(
            self.record_store,
            probe_size=cache_cfg.PROBE_PAGE_SIZE,
            page_size=cache_cfg.PAGE_SIZE,
            max_streams=cache_cfg.MAX_STREAMS,
            max_records=cache_cfg.MAX_RECORDS,
        )
        self.documents = DocumentEngine(
            self.record_store,
            self.stream_cache,
            control_stream_id=documents_cfg.CHANNEL_ID,
            directory=Path(documents_cfg.DOCUMENT_DIR),
            fragment_length=documents_cfg.FRAGMENT_LENGTH,
            max_edit_length=documents_cfg.MAX_EDIT_LENGTH,
        )

    async def setup_hook(self) -> None:
        """Register slash commands and synchronise with Discord."""

        await ts_commands.setup(self)

        try:
            synced = await self.tree.sync()
            logger.info("Synced %d application command(s)", len(synced))
        except Exception:
            logger.exception("Failed to sync application commands")


bot = ThreadStoreBot()


@bot.event
async def on_ready() -> None:
    await ready_hook.handle(bot)


@bot.event
async def on_message(message: discord.Message) -> None:
    await message_hook.handle_create(bot, message)


@bot.event
async def on_message_edit(before: discord.Message, after: discord.Message) -> None:
    await message_hook.handle_update(bot, after)


@bot.event
async def on_raw_message_delete(payload: discord.RawMessageDeleteEvent) -> None:
    await message_hook.handle_delete(bot, payload.channel_id, payload.message_id)


@bot.event
async def on_thread_create(thread: discord.Thread) -> None:
    await thread_hook.handle(bot, thread)


@bot.event
async def on_thread_delete(thread: discord.Thread) -> None:
    await thread_hook.handle(bot, thread)


@bot.event
async def on_interaction(interaction: discord.Interaction) -> None:
    await interaction_hook.handle(bot, interaction)


def run() -> None:
    """Start the Discord bot using configuration from the environment."""

    if not core.DISCORD_API_TOKEN:
        logger.error("No DISCORD_API_TOKEN configured. Cannot run client.")
        return

    try:
        bot.run(core.DISCORD_API_TOKEN, log_handler=None)
    except discord.LoginFailure as exc:
        logger.error("Login failed: %s", exc)
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected error while running client: %s", exc)
