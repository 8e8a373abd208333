"""Kubernetes client helpers."""

import logging
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from . import constants
from .errors import ClusterError

logger = logging.getLogger(__name__)

# failures raised by API calls: error responses and transport errors
API_ERRORS = (ApiException, HTTPError)


def error_reason(e):
    """Short description of an API failure."""
    if isinstance(e, ApiException):
        return e.reason
    return str(e)


def init_clients(kubeconfig=None):
    """Initialize Kubernetes clients.

    An explicit kubeconfig wins; otherwise the in-cluster config is tried
    first, falling back to the default kubeconfig.
    """
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
            logger.info(f"Loaded kubeconfig from {kubeconfig}")
        else:
            try:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes config")
            except config.ConfigException:
                config.load_kube_config()
                logger.info("Loaded kubeconfig")
    except config.ConfigException as e:
        raise ClusterError(f"Error getting cluster config - {e}") from e

    return client.CoreV1Api(), client.AppsV1Api()


class KubeClients:
    """Clients built on first use, so validators that never talk to the API never load credentials."""

    def __init__(self, kubeconfig=None, factory=init_clients):
        self.kubeconfig = kubeconfig
        self.factory = factory
        self._clients = None

    def _get(self):
        if self._clients is None:
            self._clients = self.factory(self.kubeconfig)
        return self._clients

    @property
    def core_v1(self):
        return self._get()[0]

    @property
    def apps_v1(self):
        return self._get()[1]


def get_node(v1, node_name):
    """Get a node by name."""
    try:
        return v1.read_node(name=node_name)
    except API_ERRORS as e:
        logger.error(f"unable to get node with name {node_name}, err {error_reason(e)}")
        raise ClusterError(f"unable to get node with name {node_name}: {error_reason(e)}") from e


def get_node_labels(v1, node_name):
    """Get node labels, never None."""
    node = get_node(v1, node_name)
    return node.metadata.labels or {}


def get_validator_daemonset(apps_v1, namespace):
    """Get the validator DaemonSet that owns this process."""
    return apps_v1.read_namespaced_daemon_set(
        name=constants.VALIDATOR_DAEMONSET_NAME, namespace=namespace
    )


def list_pods(v1, namespace, app_label, node_name):
    """List pods by app label on a node."""
    return v1.list_namespaced_pod(
        namespace=namespace,
        label_selector=f"app={app_label}",
        field_selector=f"spec.nodeName={node_name}",
    )


def delete_pod(v1, pod_name, namespace):
    """Delete a pod immediately, letting dependents go in the background."""
    v1.delete_namespaced_pod(
        name=pod_name,
        namespace=namespace,
        body=client.V1DeleteOptions(
            propagation_policy="Background",
            grace_period_seconds=0,
        ),
    )


def get_pod_phase(v1, pod_name, namespace):
    """Get pod phase."""
    pod = v1.read_namespaced_pod(name=pod_name, namespace=namespace)
    return pod.status.phase if pod.status else None
