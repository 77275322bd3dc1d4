"""
Kubernetes client for game server Deployments and StatefulSets.
"""

import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from juicebot.config import LABEL_DISPLAY_NAME, LABEL_GAME_SERVER, REQUEST_TIMEOUT_SECONDS
from juicebot.errors import Conflict, SourceUnavailable, WorkloadNotFound
from juicebot.workloads import Workload, WorkloadKind

logger = logging.getLogger(__name__)


def connect_kubernetes() -> client.AppsV1Api:
    """Load cluster credentials and return an AppsV1Api.

    Raises SourceUnavailable when neither in-cluster config nor a kubeconfig
    can be loaded.
    """
    try:
        # Try in-cluster config first, fall back to kubeconfig
        try:
            k8s_config.load_incluster_config()
            logger.info('Loaded in-cluster Kubernetes config')
        except k8s_config.ConfigException:
            k8s_config.load_kube_config()
            logger.info('Loaded kubeconfig from default location')
    except (k8s_config.ConfigException, OSError) as e:
        raise SourceUnavailable(f'failed to create kubernetes config: {e}') from e
    return client.AppsV1Api()


def _error_message(e: ApiException) -> str:
    return str(e.reason) if getattr(e, 'reason', None) else str(e)


class KubernetesWorkloadSource:
    """WorkloadSource backed by the Kubernetes apps/v1 API."""

    def __init__(
        self,
        apps_api: client.AppsV1Api,
        request_timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS,
        display_name_label: str = LABEL_DISPLAY_NAME,
        marker_label: str = LABEL_GAME_SERVER,
    ):
        self.apps_api = apps_api
        self.request_timeout = request_timeout
        self.display_name_label = display_name_label
        self.marker_label = marker_label

    @classmethod
    def from_environment(cls, **kwargs) -> 'KubernetesWorkloadSource':
        return cls(connect_kubernetes(), **kwargs)

    def _call(self, fn, *args, **kwargs):
        if self.request_timeout is not None:
            kwargs['_request_timeout'] = self.request_timeout
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise WorkloadNotFound(_error_message(e)) from e
            if e.status == 409:
                raise Conflict(_error_message(e)) from e
            raise SourceUnavailable(f'Kubernetes API error ({e.status}): {_error_message(e)}') from e
        except HTTPError as e:
            raise SourceUnavailable(f'Kubernetes API unreachable: {e}') from e

    def _to_workload(self, obj: Any, kind: WorkloadKind) -> Workload:
        metadata = obj.metadata
        labels: Dict[str, str] = dict(metadata.labels or {})
        annotations: Dict[str, str] = dict(metadata.annotations or {})
        # The marker only counts when set as a label
        annotations.pop(self.marker_label, None)

        spec_replicas = obj.spec.replicas if obj.spec is not None else None
        ready = obj.status.ready_replicas if obj.status is not None else None

        return Workload(
            namespace=metadata.namespace,
            name=metadata.name,
            kind=kind,
            # The API server defaults an unset replica count to 1
            desired_replicas=spec_replicas if spec_replicas is not None else 1,
            ready_replicas=ready or 0,
            access_control={**labels, **annotations},
            display_name=labels.get(self.display_name_label),
        )

    def list_workloads(self, namespace: str, kind: WorkloadKind, marker_key: str) -> List[Workload]:
        """List workloads carrying the marker label (existence selector)."""
        if kind is WorkloadKind.DEPLOYMENT:
            fn = self.apps_api.list_namespaced_deployment
        else:
            fn = self.apps_api.list_namespaced_stateful_set
        result = self._call(fn, namespace, label_selector=marker_key)
        return [self._to_workload(item, kind) for item in result.items or []]

    def get_workload(self, namespace: str, name: str, kind: WorkloadKind) -> Workload:
        if kind is WorkloadKind.DEPLOYMENT:
            fn = self.apps_api.read_namespaced_deployment
        else:
            fn = self.apps_api.read_namespaced_stateful_set
        return self._to_workload(self._call(fn, name, namespace), kind)

    def set_desired_replicas(self, namespace: str, name: str, kind: WorkloadKind, count: int) -> None:
        if kind is WorkloadKind.DEPLOYMENT:
            fn = self.apps_api.patch_namespaced_deployment_scale
        else:
            fn = self.apps_api.patch_namespaced_stateful_set_scale
        patch_body = {
            'spec': {
                'replicas': count
            }
        }
        self._call(fn, name, namespace, patch_body)
