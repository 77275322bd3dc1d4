"""
/dog command cog - React to every message from a chosen user.
"""

import logging
from typing import Dict, Optional

import discord
from discord import app_commands
from discord.ext import commands

logger = logging.getLogger(__name__)


class DogCog(commands.Cog):
    """Cog containing the /dog command and its message listener."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        # guild id -> id of the user being dogged there
        self.dogging: Dict[int, int] = {}

    @app_commands.command(name='dog', description='Dog a user')
    @app_commands.describe(user='User to dog (leave empty to stop)')
    @app_commands.guild_only()
    async def dog(self, interaction: discord.Interaction, user: Optional[discord.User] = None):
        if user is None:
            self.dogging.pop(interaction.guild_id, None)
            await interaction.response.send_message('Dogging Disabled')
            return

        self.dogging[interaction.guild_id] = user.id
        await interaction.response.send_message(
            f'Now Dogging: <@{user.id}>',
            allowed_mentions=discord.AllowedMentions.none()
        )

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        if message.guild is None:
            return
        if self.dogging.get(message.guild.id) != message.author.id:
            return

        try:
            await message.add_reaction(self.bot.settings.dog.emote)
        except discord.HTTPException as e:
            logger.warning('Failed to add dog reaction in guild %s: %s', message.guild.id, e)
            await message.channel.send(f'Error Encountered: {e}')


async def setup(bot: commands.Bot):
    """Load the DogCog."""
    await bot.add_cog(DogCog(bot))
