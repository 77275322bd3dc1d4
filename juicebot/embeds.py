"""
Discord embed formatting for game server and name history replies.
"""

from typing import List

import discord

from juicebot.config import ANNOTATION_GUILDS, LABEL_GAME_SERVER
from juicebot.db import NameHistoryEntry
from juicebot.servers import DesiredState, ListResult, ServerRecord, ToggleOutcome, ToggleResult

MAX_NICKNAME_WIDTH = 29


def format_server_line(server: ServerRecord) -> str:
    if server.running:
        status_emoji, status = '🟢', 'running'
    else:
        status_emoji, status = '🔴', 'stopped'
    return (
        f'{status_emoji} **{server.display_name}** ({server.namespace}/{server.name}) - '
        f'{status} ({server.ready_replicas}/{server.desired_replicas} replicas)'
    )


def format_server_list_embed(
    result: ListResult,
    guild_id: str,
    marker_key: str = LABEL_GAME_SERVER,
    guilds_key: str = ANNOTATION_GUILDS,
) -> discord.Embed:
    """Format a ListResult for /servers list."""
    if result.empty:
        return discord.Embed(
            title='🎮 Game Servers',
            description=(
                'No game servers found for this guild. Make sure deployments/statefulsets '
                f'have the label `{marker_key}` and this guild ID ({guild_id}) in '
                f'the comma-separated `{guilds_key}` annotation.'
            ),
            color=discord.Color.blue()
        )

    running = sum(1 for s in result if s.running)
    embed = discord.Embed(
        title=f'🎮 Game Servers ({len(result)})',
        description='\n'.join(format_server_line(s) for s in result),
        color=discord.Color.green() if running else discord.Color.blue()
    )
    embed.set_footer(text=f'{running} running • Use /servers start <namespace/name> to start one')
    return embed


def format_toggle_embed(result: ToggleResult, target: DesiredState) -> discord.Embed:
    """Format the outcome of /servers start or /servers stop."""
    outcome = result.outcome
    if outcome is ToggleOutcome.STARTED:
        return discord.Embed(
            title='🟢 Starting Server',
            description=f'Starting server **{result.name}** ({result.server_id})',
            color=discord.Color.green()
        )
    if outcome is ToggleOutcome.STOPPED:
        return discord.Embed(
            title='🔴 Stopping Server',
            description=f'Stopping server **{result.name}** ({result.server_id})',
            color=discord.Color.red()
        )
    if outcome is ToggleOutcome.ALREADY_IN_STATE:
        state = 'running' if target is DesiredState.RUNNING else 'stopped'
        return discord.Embed(
            title='ℹ️ No Change',
            description=f'Server **{result.name}** is already {state}!',
            color=discord.Color.orange()
        )
    return discord.Embed(
        title='❌ Server Not Found',
        description=f'Server **{result.server_id}** not found',
        color=discord.Color.red()
    )


def format_unavailable_embed() -> discord.Embed:
    return discord.Embed(
        title='❌ Service Unavailable',
        description='Game server service unavailable. Please try again later.',
        color=discord.Color.red()
    )


def format_name_history(entries: List[NameHistoryEntry]) -> str:
    """Render name history as a fixed-width code block."""
    rule = '━' * 52
    lines = [
        '```',
        'Name History',
        rule,
        f'{"Nickname":<30}| Changed At',
        rule,
    ]
    for entry in entries:
        nickname = entry.new_display_name or '(none)'
        nickname = nickname[:MAX_NICKNAME_WIDTH]
        lines.append(f'{nickname:<30}| {entry.changed_at_text}')
    lines.append('```')
    return '\n'.join(lines)
