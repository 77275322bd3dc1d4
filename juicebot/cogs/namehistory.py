"""
/namehistory command cog - Record and show nickname changes.
"""

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from juicebot.embeds import format_name_history
from juicebot.errors import StorageError

logger = logging.getLogger(__name__)


class NameHistoryCog(commands.Cog):
    """Cog containing the /namehistory command and the member update listener."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def settings(self):
        return self.bot.settings.namehistory

    def _enabled(self, guild_id) -> bool:
        return self.bot.name_history is not None and str(guild_id) in self.settings.guilds

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        if before.nick == after.nick:
            return
        guild_id = after.guild.id
        logger.info('User %s in guild %s changed their name to %s', after.id, guild_id, after.nick)
        if not self._enabled(guild_id):
            return

        try:
            await asyncio.to_thread(
                self.bot.name_history.add_entry, str(guild_id), str(after.id), after.nick or ''
            )
        except StorageError as e:
            logger.error('Failed to record name change: %s', e)

        channel_id = self.settings.announce_channel_id
        if not channel_id:
            return
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            logger.warning('Name change announcement channel %s not found', channel_id)
            return
        try:
            await channel.send(f'<@{after.id}> has a new name!')
        except discord.HTTPException as e:
            logger.warning('Failed to send name change announcement: %s', e)

    @app_commands.command(name='namehistory', description='Gets the nickname history of a user')
    @app_commands.describe(user='user to lookup')
    @app_commands.guild_only()
    async def namehistory(self, interaction: discord.Interaction, user: discord.User):
        if not self._enabled(interaction.guild_id):
            await interaction.response.send_message('Name history is not enabled on this server')
            return

        try:
            history = await asyncio.to_thread(
                self.bot.name_history.get_history, str(interaction.guild_id), str(user.id)
            )
        except StorageError as e:
            logger.error('Failed to get name history: %s', e)
            await interaction.response.send_message('Failed to retrieve name history')
            return

        if not history:
            await interaction.response.send_message('No name history found for this user')
            return

        await interaction.response.send_message(format_name_history(history))


async def setup(bot: commands.Bot):
    """Load the NameHistoryCog."""
    await bot.add_cog(NameHistoryCog(bot))
