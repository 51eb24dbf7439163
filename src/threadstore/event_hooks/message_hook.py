"""
Forward message lifecycle events to the stream cache and then to features.

The cache is always updated first so features observe the new state.
"""

from __future__ import annotations

import logging

import discord

from threadstore import features
from threadstore.clients.record_store import record_from_message

logger = logging.getLogger(__name__)


async def handle_create(client: discord.Client, message: discord.Message) -> None:
    record = record_from_message(message)
    await client.stream_cache.on_record_created(record)
    await features.dispatch(features.OnRecordCreated, client, record)


async def handle_update(client: discord.Client, message: discord.Message) -> None:
    record = record_from_message(message)
    await client.stream_cache.on_record_updated(record)
    await features.dispatch(features.OnRecordUpdated, client, record)


async def handle_delete(client: discord.Client, channel_id: int, message_id: int) -> None:
    logger.debug("Message %s deleted in channel %s", message_id, channel_id)
    await client.stream_cache.on_record_deleted(channel_id, message_id)
    await features.dispatch(features.OnRecordDeleted, client, channel_id, message_id)
