"""
Game server listing and start/stop for a requesting guild.

Both operations read fresh state from a WorkloadSource on every call. A server
that does not exist and a server owned by another guild produce the same
result so that callers cannot discover other guilds' servers.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from juicebot.authorization import is_authorized, parse_guild_ids
from juicebot.config import ANNOTATION_GUILDS, GAME_SERVER_NAMESPACE, LABEL_GAME_SERVER
from juicebot.errors import WorkloadNotFound
from juicebot.workloads import LOOKUP_ORDER, Workload, WorkloadKind, WorkloadSource

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('juicebot.audit')


class DesiredState(enum.Enum):
    RUNNING = 1
    STOPPED = 0

    @property
    def replicas(self) -> int:
        return self.value


class ToggleOutcome(enum.Enum):
    STARTED = 'started'
    STOPPED = 'stopped'
    ALREADY_IN_STATE = 'already_in_state'
    NOT_FOUND_OR_FORBIDDEN = 'not_found_or_forbidden'


@dataclass(frozen=True)
class ToggleResult:
    outcome: ToggleOutcome
    namespace: str
    name: str

    @property
    def server_id(self) -> str:
        if not self.namespace:
            return self.name
        return f'{self.namespace}/{self.name}'


@dataclass(frozen=True)
class ServerRecord:
    display_name: str
    namespace: str
    name: str
    running: bool
    ready_replicas: int
    desired_replicas: int
    kind: WorkloadKind = WorkloadKind.DEPLOYMENT

    @classmethod
    def from_workload(cls, workload: Workload) -> 'ServerRecord':
        return cls(
            display_name=workload.label,
            namespace=workload.namespace,
            name=workload.name,
            running=workload.ready_replicas > 0,
            ready_replicas=workload.ready_replicas,
            desired_replicas=workload.desired_replicas,
            kind=workload.kind,
        )


@dataclass(frozen=True)
class ListResult:
    servers: Tuple[ServerRecord, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.servers

    def __len__(self) -> int:
        return len(self.servers)

    def __iter__(self):
        return iter(self.servers)


def parse_server_id(server_id: str) -> Optional[Tuple[str, str]]:
    """Split a ``namespace/name`` argument. Returns None if malformed."""
    parts = server_id.strip().split('/')
    if len(parts) != 2:
        return None
    namespace, name = (p.strip() for p in parts)
    if not namespace or not name:
        return None
    return namespace, name


def list_servers(
    guild_id: str,
    source: WorkloadSource,
    namespace: str = GAME_SERVER_NAMESPACE,
    marker_key: str = LABEL_GAME_SERVER,
    guilds_key: str = ANNOTATION_GUILDS,
) -> ListResult:
    """List every game server the guild is authorized for, in source order.

    SourceUnavailable from the source propagates to the caller.
    """
    servers = []
    for kind in LOOKUP_ORDER:
        for workload in source.list_workloads(namespace, kind, marker_key):
            if not is_authorized(workload.access_control, guild_id, marker_key, guilds_key):
                continue
            servers.append(ServerRecord.from_workload(workload))
    return ListResult(tuple(servers))


def _find_workload(source: WorkloadSource, namespace: str, name: str) -> Optional[Workload]:
    for kind in LOOKUP_ORDER:
        try:
            return source.get_workload(namespace, name, kind)
        except WorkloadNotFound:
            continue
    return None


def _in_state(workload: Workload, target: DesiredState) -> bool:
    # Anything scaled above zero counts as running
    if target is DesiredState.RUNNING:
        return workload.desired_replicas > 0
    return workload.desired_replicas == 0


def set_desired_state(
    namespace: str,
    name: str,
    guild_id: str,
    target: DesiredState,
    source: WorkloadSource,
    *,
    actor: Optional[str] = None,
    management_namespace: str = GAME_SERVER_NAMESPACE,
    marker_key: str = LABEL_GAME_SERVER,
    guilds_key: str = ANNOTATION_GUILDS,
) -> ToggleResult:
    """Start or stop a game server on behalf of a guild.

    Returns a ToggleResult. A workload that disappears before it can be scaled
    is reported as not found. Conflict and SourceUnavailable propagate; they
    are not retried here.
    """
    not_found = ToggleResult(ToggleOutcome.NOT_FOUND_OR_FORBIDDEN, namespace, name)

    # Never touch anything outside the game server namespace
    if namespace != management_namespace:
        return not_found

    workload = _find_workload(source, namespace, name)
    if workload is None:
        return not_found

    if not is_authorized(workload.access_control, guild_id, marker_key, guilds_key):
        owners = workload.access_control.get(guilds_key)
        if marker_key not in workload.access_control:
            audit_logger.warning(
                'User %s in guild %s attempted to access %s %s/%s without the game server label',
                actor, guild_id, workload.kind.value, namespace, name,
            )
        else:
            audit_logger.warning(
                'User %s in guild %s attempted to access %s/%s belonging to guilds %s',
                actor, guild_id, namespace, name, sorted(parse_guild_ids(owners)),
            )
        return not_found

    if _in_state(workload, target):
        return ToggleResult(ToggleOutcome.ALREADY_IN_STATE, namespace, name)

    try:
        source.set_desired_replicas(namespace, name, workload.kind, target.replicas)
    except WorkloadNotFound:
        # Deleted between the read and the scale
        return not_found
    logger.info(
        'Scaled %s %s/%s from %d to %d replicas for guild %s (user %s)',
        workload.kind.value, namespace, name, workload.desired_replicas, target.replicas,
        guild_id, actor,
    )

    if target is DesiredState.RUNNING:
        return ToggleResult(ToggleOutcome.STARTED, namespace, name)
    return ToggleResult(ToggleOutcome.STOPPED, namespace, name)
