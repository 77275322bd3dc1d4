"""
/servers command cog - List, start and stop game servers.
"""

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from juicebot.embeds import format_server_list_embed, format_toggle_embed, format_unavailable_embed
from juicebot.errors import SourceUnavailable
from juicebot.servers import (
    DesiredState,
    ToggleOutcome,
    ToggleResult,
    list_servers,
    parse_server_id,
    set_desired_state,
)

logger = logging.getLogger(__name__)


@app_commands.guild_only()
class ServersCog(commands.GroupCog, group_name='servers', group_description='Manage game servers'):
    """Cog containing the /servers list|start|stop commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def settings(self):
        return self.bot.settings.servers

    @app_commands.command(name='list', description='List all game servers')
    async def servers_list(self, interaction: discord.Interaction):
        """List the game servers this guild may operate."""
        await interaction.response.defer(thinking=True)
        guild_id = str(interaction.guild_id)

        try:
            result = await asyncio.to_thread(
                list_servers,
                guild_id,
                self.bot.workloads,
                namespace=self.settings.namespace,
                marker_key=self.settings.marker_label,
                guilds_key=self.settings.guilds_annotation,
            )
        except SourceUnavailable as e:
            logger.error('Failed to list game servers for guild %s: %s', guild_id, e)
            await interaction.followup.send(embed=format_unavailable_embed())
            return

        embed = format_server_list_embed(
            result, guild_id, self.settings.marker_label, self.settings.guilds_annotation
        )
        await interaction.followup.send(embed=embed)

    @app_commands.command(name='start', description='Start a game server')
    @app_commands.describe(server='Server ID to start (namespace/name)')
    async def servers_start(self, interaction: discord.Interaction, server: str):
        await self._toggle(interaction, server, DesiredState.RUNNING)

    @app_commands.command(name='stop', description='Stop a game server')
    @app_commands.describe(server='Server ID to stop (namespace/name)')
    async def servers_stop(self, interaction: discord.Interaction, server: str):
        await self._toggle(interaction, server, DesiredState.STOPPED)

    async def _toggle(self, interaction: discord.Interaction, server: str, target: DesiredState):
        await interaction.response.defer(thinking=True)
        guild_id = str(interaction.guild_id)

        parsed = parse_server_id(server)
        if parsed is None:
            # Malformed IDs get the same answer as unknown ones
            result = ToggleResult(ToggleOutcome.NOT_FOUND_OR_FORBIDDEN, '', server.strip())
            await interaction.followup.send(embed=format_toggle_embed(result, target))
            return

        namespace, name = parsed
        try:
            result = await asyncio.to_thread(
                set_desired_state,
                namespace,
                name,
                guild_id,
                target,
                self.bot.workloads,
                actor=str(interaction.user.id),
                management_namespace=self.settings.namespace,
                marker_key=self.settings.marker_label,
                guilds_key=self.settings.guilds_annotation,
            )
        except SourceUnavailable as e:
            logger.error('Failed to scale %s/%s to %d for guild %s: %s',
                         namespace, name, target.replicas, guild_id, e)
            await interaction.followup.send(embed=format_unavailable_embed())
            return

        await interaction.followup.send(embed=format_toggle_embed(result, target))


async def setup(bot: commands.Bot):
    """Load the ServersCog."""
    await bot.add_cog(ServersCog(bot))
