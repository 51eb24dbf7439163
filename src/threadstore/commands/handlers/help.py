from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from .. import register_cog


def describe_documents(documents) -> str:
    """One line per loaded document with its lock state glyph."""

    lines = []
    for name in sorted(documents.names()):
        state = documents.get(name).lock_state
        lines.append(f"- **{name}**: {state.display}")
    return "\n".join(lines) or "No documents loaded."


@register_cog
class Help(commands.Cog):
    """List slash commands and synchronized documents."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(
        name="help", description="List slash commands and synchronized documents."
    )
    async def help(self, interaction: discord.Interaction) -> None:
        command_names = sorted(f"/{cmd.name}" for cmd in self.bot.tree.get_commands())
        listing = ", ".join(command_names) if command_names else "None registered"
        await interaction.response.send_message(
            f"Available commands: {listing}\nDocuments:\n{describe_documents(self.bot.documents)}",
            ephemeral=True,
        )
