#!/usr/bin/env python3
"""
juicebot

A Discord bot for game servers, callouts, dogging and nickname history.
"""

import logging
import sys
from typing import Optional

import discord
from discord.ext import commands

from juicebot import config
from juicebot.cogs import EXTENSIONS, SERVERS_EXTENSION
from juicebot.config import BotConfig
from juicebot.db import NameHistoryStore
from juicebot.errors import ConfigError, SourceUnavailable, StorageError
from juicebot.k8s_client import KubernetesWorkloadSource
from juicebot.workloads import WorkloadSource

logger = logging.getLogger(__name__)


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.members = True
    intents.message_content = True
    return intents


class JuiceBot(commands.Bot):
    """Bot carrying the settings and backends its cogs share."""

    def __init__(
        self,
        settings: BotConfig,
        workloads: Optional[WorkloadSource] = None,
        name_history: Optional[NameHistoryStore] = None,
        guild_id: Optional[str] = None,
        remove_commands: bool = False,
    ):
        super().__init__(command_prefix='!', intents=build_intents())
        self.settings = settings
        self.workloads = workloads
        self.name_history = name_history
        self.sync_guild = discord.Object(id=int(guild_id)) if guild_id else None
        self.remove_commands = remove_commands

    async def setup_hook(self):
        for extension in EXTENSIONS:
            await self.load_extension(extension)
        if self.workloads is not None:
            await self.load_extension(SERVERS_EXTENSION)
        else:
            logger.warning('No workload source configured, /servers is disabled')

        if self.sync_guild is not None:
            self.tree.copy_global_to(guild=self.sync_guild)
            synced = await self.tree.sync(guild=self.sync_guild)
            logger.info('Synced %d commands to guild %s', len(synced), self.sync_guild.id)
        else:
            synced = await self.tree.sync()
            logger.info('Synced %d commands globally', len(synced))

    async def on_ready(self):
        logger.info('Logged in as %s (ID: %s)', self.user, self.user.id)
        logger.info('Ready event - Guilds: %d', len(self.guilds))

    async def close(self):
        if self.remove_commands and self.is_ready():
            logger.info('Removing commands...')
            self.tree.clear_commands(guild=self.sync_guild)
            try:
                await self.tree.sync(guild=self.sync_guild)
            except discord.HTTPException as e:
                logger.error('Failed to remove commands: %s', e)
        if self.name_history is not None:
            self.name_history.close()
        await super().close()


def create_bot() -> JuiceBot:
    """Build the bot and its backends. Raises on unusable configuration."""
    settings = config.load_bot_config(config.CONFIG_PATH)
    guild_id = config.parse_snowflake(config.GUILD_ID, 'DISCORD_GUILD_ID')
    if settings.debug:
        logger.debug('Loaded config: %r', settings)

    workloads = None
    if settings.servers.enabled:
        workloads = KubernetesWorkloadSource.from_environment(
            request_timeout=settings.servers.request_timeout,
            display_name_label=settings.servers.display_name_label,
            marker_label=settings.servers.marker_label,
        )

    name_history = None
    if config.POSTGRES_URI:
        name_history = NameHistoryStore.from_url(config.POSTGRES_URI)
        name_history.init()
        logger.info('Name history database initialized')

    return JuiceBot(
        settings,
        workloads=workloads,
        name_history=name_history,
        guild_id=guild_id,
        remove_commands=config.REMOVE_COMMANDS,
    )


def main():
    """Run the bot."""
    discord.utils.setup_logging(level=config.LOG_LEVEL.upper())

    if not config.DISCORD_TOKEN:
        logger.error('DISCORD_BOT_TOKEN environment variable not set')
        logger.error('Copy .env.example to .env and add your bot token')
        sys.exit(1)

    try:
        bot = create_bot()
    except (ConfigError, SourceUnavailable, StorageError) as e:
        logger.error('Startup failed: %s', e)
        sys.exit(1)

    bot.run(config.DISCORD_TOKEN, log_handler=None)


if __name__ == '__main__':
    main()
