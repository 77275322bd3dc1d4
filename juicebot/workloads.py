"""
Workload model and the source protocol the game server commands consume.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Protocol


class WorkloadKind(enum.Enum):
    DEPLOYMENT = 'Deployment'
    STATEFUL_SET = 'StatefulSet'


# Lookup order used when a start/stop names a server without its kind
LOOKUP_ORDER = (WorkloadKind.DEPLOYMENT, WorkloadKind.STATEFUL_SET)


@dataclass(frozen=True)
class Workload:
    """A scalable game server, as read from the workload source."""

    namespace: str
    name: str
    kind: WorkloadKind
    desired_replicas: int = 0
    ready_replicas: int = 0
    access_control: Mapping[str, str] = field(default_factory=dict)
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def server_id(self) -> str:
        return f'{self.namespace}/{self.name}'


class WorkloadSource(Protocol):
    """Backing store for workloads (the Kubernetes API in production)."""

    def list_workloads(self, namespace: str, kind: WorkloadKind, marker_key: str) -> List[Workload]:
        """List workloads of `kind` in `namespace` that carry `marker_key`.

        Raises SourceUnavailable on transport errors.
        """
        ...

    def get_workload(self, namespace: str, name: str, kind: WorkloadKind) -> Workload:
        """Fetch one workload. Raises WorkloadNotFound or SourceUnavailable."""
        ...

    def set_desired_replicas(self, namespace: str, name: str, kind: WorkloadKind, count: int) -> None:
        """Scale a workload. Raises WorkloadNotFound, Conflict or SourceUnavailable."""
        ...
