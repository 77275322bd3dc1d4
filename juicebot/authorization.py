"""
Guild authorization for game servers.

Access is carried entirely in workload metadata: a marker label flags the
workload as a managed game server and an annotation lists the guild IDs that
may see and operate it. Anything missing fails closed.
"""

from typing import FrozenSet, Mapping, Optional

from juicebot.config import ANNOTATION_GUILDS, LABEL_GAME_SERVER


def parse_guild_ids(value: Optional[str]) -> FrozenSet[str]:
    """Split a comma-separated guild list, trimming each entry."""
    if not value:
        return frozenset()
    return frozenset(g.strip() for g in value.split(',') if g.strip())


def is_authorized(
    access_control: Mapping[str, str],
    guild_id: str,
    marker_key: str = LABEL_GAME_SERVER,
    guilds_key: str = ANNOTATION_GUILDS,
) -> bool:
    """Return True if `guild_id` may see/operate a workload with this metadata."""
    if not guild_id or marker_key not in access_control:
        return False
    value = access_control.get(guilds_key)
    if not value:
        return False
    # Exact, case-sensitive match on each trimmed entry
    return any(g.strip() == guild_id for g in value.split(','))
