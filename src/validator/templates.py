"""Validation pod templates."""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import yaml
from kubernetes import client

from .errors import PodLifecycleError

logger = logging.getLogger(__name__)


class _ManifestResponse:
    """Adapter so ApiClient.deserialize can decode a local manifest."""

    def __init__(self, manifest):
        self.data = json.dumps(manifest)


def load_pod_manifest(path):
    """Load a pod definition from a YAML file."""
    with open(path) as f:
        try:
            manifest = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PodLifecycleError(f"unable to parse pod manifest {path}: {e}") from e
    kind = manifest.get("kind") if isinstance(manifest, dict) else None
    if kind != "Pod":
        raise PodLifecycleError(f"Expected a Pod manifest in {path}, found kind {kind!r}")
    logger.debug(f"Decoding for Kind {kind} in path: {path}")
    return client.ApiClient().deserialize(_ManifestResponse(manifest), "V1Pod")


@dataclass
class PodParameters:
    """Per-node values substituted into a validation pod template."""

    namespace: str
    node_name: str
    image: str = ""
    image_pull_policy: str = ""
    image_pull_secrets: List[str] = field(default_factory=list)
    runtime_class: str = ""
    owner_references: Optional[list] = None
    tolerations: Optional[list] = None
    # resource requested by the first init container, e.g. nvidia.com/gpu
    gpu_resource_name: Optional[str] = None


def build_verification_pod(template, params):
    """Create a validation pod from a template without touching the cluster."""
    pod = copy.deepcopy(template)
    pod.metadata = pod.metadata or client.V1ObjectMeta()
    pod.metadata.namespace = params.namespace
    pod.metadata.owner_references = params.owner_references

    containers = [pod.spec.containers[0], pod.spec.init_containers[0]]
    for container in containers:
        container.image = params.image
        if params.image_pull_policy:
            container.image_pull_policy = params.image_pull_policy

    if params.image_pull_secrets:
        pull_secrets = list(pod.spec.image_pull_secrets or [])
        pull_secrets.extend(client.V1LocalObjectReference(name=name) for name in params.image_pull_secrets)
        pod.spec.image_pull_secrets = pull_secrets
    if params.runtime_class:
        pod.spec.runtime_class_name = params.runtime_class

    pod.spec.tolerations = params.tolerations
    # pin to the current node
    pod.spec.node_name = params.node_name

    if params.gpu_resource_name:
        gpu_resource = {params.gpu_resource_name: "1"}
        init_container = pod.spec.init_containers[0]
        init_container.resources = client.V1ResourceRequirements(
            limits=dict(gpu_resource),
            requests=dict(gpu_resource),
        )

    return pod
