"""
Callout listener - Occasionally reply to a message with a canned line.
"""

import logging
import random

import discord
from discord.ext import commands

logger = logging.getLogger(__name__)


class CalloutCog(commands.Cog):
    def __init__(self, bot: commands.Bot, rng: random.Random = None):
        self.bot = bot
        self.rng = rng or random.Random()

    @property
    def settings(self):
        return self.bot.settings.callout

    def should_callout(self, message: discord.Message) -> bool:
        if message.author.bot or message.guild is None:
            return False
        if not self.settings.messages:
            return False
        if str(message.guild.id) not in self.settings.guilds:
            return False
        return self.rng.randrange(self.settings.chance) == 0

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        if not self.should_callout(message):
            return

        content = self.rng.choice(self.settings.messages)
        try:
            await message.reply(
                content,
                mention_author=False,
                allowed_mentions=discord.AllowedMentions.none()
            )
        except discord.HTTPException as e:
            logger.warning('Error sending callout message: %s', e)


async def setup(bot: commands.Bot):
    """Load the CalloutCog."""
    await bot.add_cog(CalloutCog(bot))
