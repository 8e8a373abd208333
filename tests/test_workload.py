from pathlib import Path
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from conftest import make_pod
from validator.errors import PodLifecycleError
from validator.workload import WorkloadOrchestrator

TEMPLATE = str(Path(__file__).resolve().parents[1] / "manifests" / "cuda-workload-validation.yaml")


def _daemonset():
    return client.V1DaemonSet(
        metadata=client.V1ObjectMeta(
            name="nvidia-operator-validator",
            owner_references=[
                client.V1OwnerReference(api_version="nvidia.com/v1", kind="ClusterPolicy", name="cp", uid="1")
            ],
        ),
        spec=client.V1DaemonSetSpec(
            selector=client.V1LabelSelector(),
            template=client.V1PodTemplateSpec(
                spec=client.V1PodSpec(
                    containers=[],
                    tolerations=[client.V1Toleration(key="nvidia.com/gpu", operator="Exists")],
                )
            ),
        ),
    )


class FakeCluster:
    """In-memory pods for a single namespace."""

    def __init__(self, phases=("Pending", "Succeeded")):
        self.pods = {}
        self.phases = list(phases)
        self.deleted = []
        self.counter = 0
        self.v1 = MagicMock()
        self.v1.list_namespaced_pod.side_effect = self.list_pods
        self.v1.delete_namespaced_pod.side_effect = self.delete_pod
        self.v1.create_namespaced_pod.side_effect = self.create_pod
        self.v1.read_namespaced_pod.side_effect = self.read_pod
        self.apps_v1 = MagicMock()
        self.apps_v1.read_namespaced_daemon_set.return_value = _daemonset()

    def list_pods(self, namespace, label_selector, field_selector):
        return client.V1PodList(items=[make_pod(name) for name in self.pods])

    def delete_pod(self, name, namespace, body):
        self.deleted.append(name)
        del self.pods[name]

    def create_pod(self, namespace, body):
        self.counter += 1
        name = f"{body.metadata.generate_name}{self.counter}"
        self.pods[name] = body
        return make_pod(name)

    def read_pod(self, name, namespace):
        phase = self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]
        return make_pod(name, phase)


@pytest.fixture
def cluster():
    return FakeCluster()


def _orchestrator(cluster, config, retries=5):
    return WorkloadOrchestrator(cluster.v1, cluster.apps_v1, config, retries=retries, interval=0, sleep=lambda s: None)


def test_run_without_previous_pod_does_not_delete(cluster, make_config):
    _orchestrator(cluster, make_config("cuda")).run(TEMPLATE, "nvidia-cuda-validator")

    cluster.v1.delete_namespaced_pod.assert_not_called()
    assert list(cluster.pods) == ["nvidia-cuda-validator-1"]
    cluster.v1.list_namespaced_pod.assert_called_once_with(
        namespace="gpu-operator",
        label_selector="app=nvidia-cuda-validator",
        field_selector="spec.nodeName=node-1",
    )


def test_second_run_supersedes_first_pod(cluster, make_config):
    config = make_config("cuda")
    _orchestrator(cluster, config).run(TEMPLATE, "nvidia-cuda-validator")
    cluster.phases = ["Succeeded"]
    _orchestrator(cluster, config).run(TEMPLATE, "nvidia-cuda-validator")

    assert cluster.deleted == ["nvidia-cuda-validator-1"]
    assert list(cluster.pods) == ["nvidia-cuda-validator-2"]
    body = cluster.v1.delete_namespaced_pod.call_args.kwargs["body"]
    assert body.propagation_policy == "Background"
    assert body.grace_period_seconds == 0


def test_created_pod_inherits_daemonset_owner_and_tolerations(cluster, make_config):
    _orchestrator(cluster, make_config("cuda", validator_image="validator:v1")).run(
        TEMPLATE, "nvidia-cuda-validator"
    )
    pod = cluster.v1.create_namespaced_pod.call_args.kwargs["body"]
    assert pod.metadata.owner_references[0].kind == "ClusterPolicy"
    assert pod.spec.tolerations[0].key == "nvidia.com/gpu"
    assert pod.spec.node_name == "node-1"
    assert pod.spec.init_containers[0].image == "validator:v1"


def test_wait_gives_up_after_retries(make_config):
    cluster = FakeCluster(phases=["Failed"])
    orchestrator = _orchestrator(cluster, make_config("cuda"), retries=3)
    with pytest.raises(PodLifecycleError, match="gave up waiting for pod"):
        orchestrator.run(TEMPLATE, "nvidia-cuda-validator")
    assert cluster.v1.read_namespaced_pod.call_count == 3


def test_get_error_is_fatal_without_retry(cluster, make_config):
    cluster.v1.read_namespaced_pod.side_effect = ApiException(status=500, reason="boom")
    with pytest.raises(PodLifecycleError, match="failed to get pod"):
        _orchestrator(cluster, make_config("cuda")).wait_for_pod("p")
    assert cluster.v1.read_namespaced_pod.call_count == 1


def test_create_error_is_fatal(cluster, make_config):
    cluster.v1.create_namespaced_pod.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(PodLifecycleError, match="failed to create validation pod"):
        _orchestrator(cluster, make_config("cuda")).run(TEMPLATE, "nvidia-cuda-validator")


def test_list_error_is_fatal(cluster, make_config):
    cluster.v1.list_namespaced_pod.side_effect = ApiException(status=500, reason="boom")
    with pytest.raises(PodLifecycleError, match="cannot list existing validation pods"):
        _orchestrator(cluster, make_config("cuda")).supersede("nvidia-cuda-validator")
    cluster.v1.create_namespaced_pod.assert_not_called()


def test_supersede_deletes_every_match(cluster, make_config):
    cluster.pods = {"a": None, "b": None}
    assert _orchestrator(cluster, make_config("cuda")).supersede("nvidia-cuda-validator") == 2
    assert cluster.deleted == ["a", "b"]


def test_missing_daemonset_is_fatal(cluster, make_config):
    cluster.apps_v1.read_namespaced_daemon_set.side_effect = ApiException(status=404, reason="Not Found")
    with pytest.raises(PodLifecycleError, match="ownerReference"):
        _orchestrator(cluster, make_config("cuda")).run(TEMPLATE, "nvidia-cuda-validator")
    cluster.v1.create_namespaced_pod.assert_not_called()
