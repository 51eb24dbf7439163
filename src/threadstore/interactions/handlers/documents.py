"""Buttons and the edit modal attached to document threads."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import discord

from threadstore.documents import controls
from threadstore.errors import (
    DocumentNotFound,
    SizeLimitExceeded,
    StoreUnavailable,
    ValidationFailure,
)

from .. import register

logger = logging.getLogger(__name__)

NOT_LOADED_REPLY = "This document can't be edited because it isn't loaded on the host."
TOO_LARGE_REPLY = "This document can't be edited because it exceeds Discord's size limit."
INVALID_REPLY = "Your input was not a valid JSON object. Please try again."
SUCCESS_REPLY = "Success! The document has been updated."
STORE_FAILED_REPLY = (
    "The document was saved locally but the thread could not be updated. "
    "It will be synchronized on the next restart."
)


class EditDocumentModal(discord.ui.Modal):
    """Single text area pre-filled with the document's canonical form."""

    def __init__(self, name: str, text: str, max_length: int = 4000) -> None:
        super().__init__(title="Edit Document", custom_id=controls.EDIT_MODAL, timeout=None)
        self.value = discord.ui.TextInput(
            label=name[:45],
            custom_id=controls.EDIT_VALUE,
            style=discord.TextStyle.paragraph,
            default=text,
            required=True,
            max_length=max_length,
        )
        self.add_item(self.value)


def _document_name(interaction: discord.Interaction) -> str:
    """Document threads are named after the document they mirror."""

    return getattr(interaction.channel, "name", "") or ""


def _submitted_value(components: Iterable[dict], custom_id: str) -> str | None:
    """Find a text input value in raw modal payload components."""

    for component in components or []:
        if component.get("custom_id") == custom_id and "value" in component:
            return component["value"]
        nested = component.get("components") or (
            [component["component"]] if "component" in component else []
        )
        found = _submitted_value(nested, custom_id)
        if found is not None:
            return found
    return None


@register
class EditButton:
    custom_id = controls.EDIT_BUTTON

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        name = _document_name(interaction)
        try:
            text = bot.documents.editable_text(name)
        except DocumentNotFound:
            await interaction.response.send_message(NOT_LOADED_REPLY, ephemeral=True)
            return
        except SizeLimitExceeded:
            await interaction.response.send_message(TOO_LARGE_REPLY, ephemeral=True)
            return
        await interaction.response.send_modal(
            EditDocumentModal(name, text, max_length=bot.documents.max_edit_length)
        )


@register
class EditModal:
    custom_id = controls.EDIT_MODAL

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        name = _document_name(interaction)
        data = getattr(interaction, "data", None) or {}
        text = _submitted_value(data.get("components", []), controls.EDIT_VALUE) or ""

        try:
            await bot.documents.edit(name, text)
        except ValidationFailure:
            await interaction.followup.send(INVALID_REPLY, ephemeral=True)
            return
        except DocumentNotFound:
            await interaction.followup.send(NOT_LOADED_REPLY, ephemeral=True)
            return
        except SizeLimitExceeded:
            await interaction.followup.send(TOO_LARGE_REPLY, ephemeral=True)
            return
        except StoreUnavailable:
            await interaction.followup.send(STORE_FAILED_REPLY, ephemeral=True)
            return

        await interaction.followup.send(SUCCESS_REPLY, ephemeral=True)


@register
class LockButton:
    custom_id = controls.LOCK_BUTTON

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await bot.documents.lock(_document_name(interaction))


@register
class UnlockButton:
    custom_id = controls.UNLOCK_BUTTON

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await bot.documents.unlock(_document_name(interaction))


@register
class HelpButton:
    custom_id = controls.HELP_BUTTON

    @staticmethod
    async def handle(bot: Any, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(controls.HELP_TEXT, ephemeral=True)
