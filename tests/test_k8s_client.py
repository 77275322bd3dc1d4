import unittest
from unittest.mock import MagicMock, patch

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError

from juicebot import k8s_client
from juicebot.authorization import is_authorized
from juicebot.config import ANNOTATION_GUILDS, LABEL_GAME_SERVER
from juicebot.errors import Conflict, SourceUnavailable, WorkloadNotFound
from juicebot.k8s_client import KubernetesWorkloadSource
from juicebot.servers import DesiredState, ToggleOutcome, set_desired_state
from juicebot.workloads import WorkloadKind


def _deployment(name, labels=None, annotations=None, replicas=1, ready=None, namespace='games'):
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(
            name=name, namespace=namespace, labels=labels, annotations=annotations
        ),
        spec=client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={'app': name}),
            template=client.V1PodTemplateSpec(),
        ),
        status=client.V1DeploymentStatus(ready_replicas=ready),
    )


def _stateful_set(name, labels=None, annotations=None, replicas=0, ready=None):
    return client.V1StatefulSet(
        metadata=client.V1ObjectMeta(name=name, namespace='games', labels=labels,
                                     annotations=annotations),
        spec=client.V1StatefulSetSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={'app': name}),
            service_name=name,
            template=client.V1PodTemplateSpec(),
        ),
        status=client.V1StatefulSetStatus(replicas=replicas, ready_replicas=ready),
    )


class TestKubernetesWorkloadSource(unittest.TestCase):
    def setUp(self):
        self.api = MagicMock()
        self.source = KubernetesWorkloadSource(self.api, request_timeout=5)

    def test_list_deployments_uses_label_selector(self):
        self.api.list_namespaced_deployment.return_value = client.V1DeploymentList(items=[
            _deployment(
                'minecraft',
                labels={LABEL_GAME_SERVER: 'true', 'app.kubernetes.io/name': 'Minecraft'},
                annotations={ANNOTATION_GUILDS: '100, 200'},
                replicas=1,
                ready=1,
            ),
        ])

        workloads = self.source.list_workloads('games', WorkloadKind.DEPLOYMENT, LABEL_GAME_SERVER)

        self.api.list_namespaced_deployment.assert_called_once_with(
            'games', label_selector=LABEL_GAME_SERVER, _request_timeout=5
        )
        (workload,) = workloads
        self.assertEqual(workload.name, 'minecraft')
        self.assertEqual(workload.kind, WorkloadKind.DEPLOYMENT)
        self.assertEqual((workload.desired_replicas, workload.ready_replicas), (1, 1))
        self.assertEqual(workload.display_name, 'Minecraft')
        self.assertEqual(workload.access_control[ANNOTATION_GUILDS], '100, 200')
        self.assertEqual(workload.access_control[LABEL_GAME_SERVER], 'true')

    def test_list_stateful_sets(self):
        self.api.list_namespaced_stateful_set.return_value = client.V1StatefulSetList(items=[
            _stateful_set('factorio', labels={LABEL_GAME_SERVER: 'true'}),
        ])

        (workload,) = self.source.list_workloads('games', WorkloadKind.STATEFUL_SET, LABEL_GAME_SERVER)

        self.assertEqual(workload.kind, WorkloadKind.STATEFUL_SET)
        self.assertEqual((workload.desired_replicas, workload.ready_replicas), (0, 0))
        self.assertIsNone(workload.display_name)
        self.api.list_namespaced_deployment.assert_not_called()

    def test_marker_annotation_is_not_a_label(self):
        self.api.read_namespaced_deployment.return_value = _deployment(
            'db',
            labels={'app': 'postgres'},
            annotations={LABEL_GAME_SERVER: 'true', ANNOTATION_GUILDS: '100'},
            replicas=1,
        )

        workload = self.source.get_workload('games', 'db', WorkloadKind.DEPLOYMENT)

        self.assertNotIn(LABEL_GAME_SERVER, workload.access_control)
        self.assertFalse(is_authorized(workload.access_control, '100'))

        result = set_desired_state('games', 'db', '100', DesiredState.STOPPED, self.source)

        self.assertEqual(result.outcome, ToggleOutcome.NOT_FOUND_OR_FORBIDDEN)
        self.api.patch_namespaced_deployment_scale.assert_not_called()

    def test_custom_marker_label(self):
        source = KubernetesWorkloadSource(self.api, marker_label='example.com/managed')
        self.api.read_namespaced_deployment.return_value = _deployment(
            'minecraft',
            labels={'example.com/managed': ''},
            annotations={'example.com/managed': 'x'},
        )

        workload = source.get_workload('games', 'minecraft', WorkloadKind.DEPLOYMENT)

        self.assertEqual(workload.access_control, {'example.com/managed': ''})

    def test_scale_of_deleted_workload_raises_not_found(self):
        self.api.patch_namespaced_deployment_scale.side_effect = ApiException(status=404, reason='Not Found')

        with self.assertRaises(WorkloadNotFound):
            self.source.set_desired_replicas('games', 'minecraft', WorkloadKind.DEPLOYMENT, 1)

    def test_get_missing_raises_not_found(self):
        self.api.read_namespaced_deployment.side_effect = ApiException(status=404, reason='Not Found')

        with self.assertRaises(WorkloadNotFound):
            self.source.get_workload('games', 'missing', WorkloadKind.DEPLOYMENT)

    def test_get_metadata_without_labels(self):
        self.api.read_namespaced_stateful_set.return_value = _stateful_set('bare', replicas=2, ready=2)

        workload = self.source.get_workload('games', 'bare', WorkloadKind.STATEFUL_SET)

        self.api.read_namespaced_stateful_set.assert_called_once_with('bare', 'games', _request_timeout=5)
        self.assertEqual(workload.access_control, {})
        self.assertEqual(workload.desired_replicas, 2)

    def test_scale_patches_deployment(self):
        self.source.set_desired_replicas('games', 'minecraft', WorkloadKind.DEPLOYMENT, 1)

        self.api.patch_namespaced_deployment_scale.assert_called_once_with(
            'minecraft', 'games', {'spec': {'replicas': 1}}, _request_timeout=5
        )

    def test_scale_patches_stateful_set(self):
        self.source.set_desired_replicas('games', 'factorio', WorkloadKind.STATEFUL_SET, 0)

        self.api.patch_namespaced_stateful_set_scale.assert_called_once_with(
            'factorio', 'games', {'spec': {'replicas': 0}}, _request_timeout=5
        )

    def test_conflict(self):
        self.api.patch_namespaced_deployment_scale.side_effect = ApiException(status=409, reason='Conflict')

        with self.assertRaises(Conflict):
            self.source.set_desired_replicas('games', 'minecraft', WorkloadKind.DEPLOYMENT, 1)

    def test_api_error_is_unavailable(self):
        self.api.list_namespaced_deployment.side_effect = ApiException(status=500, reason='Internal')

        with self.assertRaises(SourceUnavailable) as ctx:
            self.source.list_workloads('games', WorkloadKind.DEPLOYMENT, LABEL_GAME_SERVER)
        self.assertNotIsInstance(ctx.exception, Conflict)

    def test_transport_error_is_unavailable(self):
        self.api.read_namespaced_deployment.side_effect = MaxRetryError(None, '/apis/apps/v1')

        with self.assertRaises(SourceUnavailable):
            self.source.get_workload('games', 'minecraft', WorkloadKind.DEPLOYMENT)

    def test_no_timeout(self):
        source = KubernetesWorkloadSource(self.api, request_timeout=None)
        self.api.read_namespaced_deployment.return_value = _deployment('minecraft')
        source.get_workload('games', 'minecraft', WorkloadKind.DEPLOYMENT)
        self.api.read_namespaced_deployment.assert_called_once_with('minecraft', 'games')


class TestConnectKubernetes(unittest.TestCase):
    @patch.object(k8s_client, 'client')
    @patch.object(k8s_client, 'k8s_config')
    def test_falls_back_to_kubeconfig(self, mock_config, mock_client):
        mock_config.ConfigException = Exception
        mock_config.load_incluster_config.side_effect = Exception('not in cluster')

        api = k8s_client.connect_kubernetes()

        mock_config.load_kube_config.assert_called_once_with()
        self.assertIs(api, mock_client.AppsV1Api.return_value)

    @patch.object(k8s_client, 'k8s_config')
    def test_fails_fast(self, mock_config):
        class FakeConfigException(Exception):
            pass

        mock_config.ConfigException = FakeConfigException
        mock_config.load_incluster_config.side_effect = FakeConfigException('not in cluster')
        mock_config.load_kube_config.side_effect = FakeConfigException('no kubeconfig')

        with self.assertRaises(SourceUnavailable):
            k8s_client.connect_kubernetes()


if __name__ == '__main__':
    unittest.main()
