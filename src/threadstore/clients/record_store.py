"""discord.py implementation of :class:`~threadstore.store.RecordStore`.

Streams are text channels or threads, records are messages, and a record's
sub-stream is the thread started from it (Discord gives that thread the same
id as its starter message). Structured ``fields`` travel as embed fields and
``controls`` as buttons.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

import discord

from threadstore.errors import StoreUnavailable
from threadstore.store import Control, Record, RecordContent

logger = logging.getLogger(__name__)

_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}
_STYLE_NAMES = {style: name for name, style in _STYLES.items()}


def record_from_message(message: discord.Message) -> Record:
    """Convert a Discord message into an immutable :class:`Record`."""

    fields: dict[str, str] = {}
    for embed in message.embeds:
        for embed_field in embed.fields:
            fields[str(embed_field.name)] = str(embed_field.value)

    controls: list[Control] = []
    for row in message.components:
        for child in getattr(row, "children", []):
            custom_id = getattr(child, "custom_id", None)
            if not custom_id:
                continue
            emoji = getattr(child, "emoji", None)
            controls.append(
                Control(
                    custom_id=custom_id,
                    label=getattr(child, "label", None) or "",
                    emoji=str(emoji) if emoji else None,
                    style=_STYLE_NAMES.get(getattr(child, "style", None), "secondary"),
                    disabled=bool(getattr(child, "disabled", False)),
                )
            )

    thread = message.thread
    return Record(
        id=message.id,
        stream_id=message.channel.id,
        author_id=message.author.id,
        created_at=message.created_at,
        content=message.content or "",
        fields=fields,
        controls=tuple(controls),
        has_substream=thread is not None,
        substream_id=thread.id if thread is not None else None,
        substream_name=thread.name if thread is not None else None,
    )


def _render(content: RecordContent) -> dict:
    """Build ``send``/``edit`` keyword arguments for ``content``."""

    embeds: list[discord.Embed] = []
    if content.fields:
        embed = discord.Embed()
        for name, value in content.fields.items():
            embed.add_field(name=name, value=value, inline=True)
        embeds.append(embed)

    view: discord.ui.View | None = None
    if content.controls:
        view = discord.ui.View(timeout=None)
        for ctrl in content.controls:
            view.add_item(
                discord.ui.Button(
                    custom_id=ctrl.custom_id,
                    label=ctrl.label,
                    emoji=ctrl.emoji,
                    style=_STYLES.get(ctrl.style, discord.ButtonStyle.secondary),
                    disabled=ctrl.disabled,
                )
            )

    return {"content": content.text, "embeds": embeds, "view": view}


@contextmanager
def _translate_errors(operation: str, stream_id: int) -> Iterator[None]:
    try:
        yield
    except discord.DiscordException as exc:
        raise StoreUnavailable(
            f"{operation} failed in stream {stream_id}: {exc}", stream_id=stream_id
        ) from exc


class DiscordRecordStore:
    """Record Store backed by a connected :class:`discord.Client`."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _channel(self, stream_id: int):
        channel = self._client.get_channel(stream_id)
        if channel is None:
            channel = await self._client.fetch_channel(stream_id)
        return channel

    async def fetch_page(
        self, stream_id: int, *, limit: int, before: int | None = None
    ) -> List[Record]:
        with _translate_errors("fetch_page", stream_id):
            channel = await self._channel(stream_id)
            cursor = discord.Object(id=before) if before is not None else None
            return [
                record_from_message(message)
                async for message in channel.history(limit=limit, before=cursor)
            ]

    async def fetch_record(self, stream_id: int, record_id: int) -> Record:
        with _translate_errors("fetch_record", stream_id):
            channel = await self._channel(stream_id)
            return record_from_message(await channel.fetch_message(record_id))

    async def create_record(self, stream_id: int, content: RecordContent) -> Record:
        with _translate_errors("create_record", stream_id):
            channel = await self._channel(stream_id)
            kwargs = _render(content)
            if kwargs["view"] is None:
                kwargs.pop("view")
            message = await channel.send(**kwargs)
            return record_from_message(message)

    async def edit_record(
        self, stream_id: int, record_id: int, content: RecordContent
    ) -> Record:
        with _translate_errors("edit_record", stream_id):
            channel = await self._channel(stream_id)
            message = await channel.get_partial_message(record_id).edit(**_render(content))
            return record_from_message(message)

    async def delete_record(self, stream_id: int, record_id: int) -> None:
        with _translate_errors("delete_record", stream_id):
            channel = await self._channel(stream_id)
            try:
                await channel.get_partial_message(record_id).delete()
            except discord.NotFound:
                logger.debug("Record %s in stream %s was already deleted", record_id, stream_id)

    async def attach_substream(self, stream_id: int, record_id: int, name: str) -> int:
        with _translate_errors("attach_substream", stream_id):
            channel = await self._channel(stream_id)
            thread = await channel.get_partial_message(record_id).create_thread(name=name)
            return thread.id

    async def fetch_substream_of(self, stream_id: int, record_id: int) -> int | None:
        with _translate_errors("fetch_substream_of", stream_id):
            channel = await self._channel(stream_id)
            message = await channel.fetch_message(record_id)
            return message.thread.id if message.thread is not None else None

    async def detach_substream(self, stream_id: int, record_id: int) -> None:
        with _translate_errors("detach_substream", stream_id):
            try:
                thread = await self._channel(record_id)
            except discord.NotFound:
                return
            if isinstance(thread, discord.Thread):
                await thread.delete()
