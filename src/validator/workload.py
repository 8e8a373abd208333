"""Validation workload pod lifecycle: build, supersede, submit, await."""

import logging
import time

from kubernetes.client.rest import ApiException

from . import constants
from .errors import PodLifecycleError
from .k8s import API_ERRORS, delete_pod, error_reason, get_pod_phase, get_validator_daemonset, list_pods
from .templates import PodParameters, build_verification_pod, load_pod_manifest

logger = logging.getLogger(__name__)


class WorkloadOrchestrator:
    """Runs one throwaway validation pod on the current node."""

    def __init__(
        self,
        v1,
        apps_v1,
        config,
        retries=constants.POD_CREATION_WAIT_RETRIES,
        interval=constants.POD_CREATION_SLEEP_INTERVAL_SECONDS,
        sleep=time.sleep,
    ):
        self.v1 = v1
        self.apps_v1 = apps_v1
        self.config = config
        self.retries = retries
        self.interval = interval
        self.sleep = sleep

    def pod_parameters(self, gpu_resource_name=None):
        """Collect template parameters, inheriting owner and tolerations from the validator DaemonSet."""
        namespace = self.config.namespace
        try:
            daemonset = get_validator_daemonset(self.apps_v1, namespace)
        except API_ERRORS as e:
            raise PodLifecycleError(
                f"unable to set ownerReference and tolerations for validator pod: {error_reason(e)}"
            ) from e

        return PodParameters(
            namespace=namespace,
            node_name=self.config.node_name,
            image=self.config.validator_image,
            image_pull_policy=self.config.image_pull_policy,
            image_pull_secrets=list(self.config.image_pull_secrets),
            runtime_class=self.config.runtime_class,
            owner_references=daemonset.metadata.owner_references,
            tolerations=daemonset.spec.template.spec.tolerations,
            gpu_resource_name=gpu_resource_name,
        )

    def supersede(self, app_label):
        """Delete validation pods left on this node by earlier runs."""
        namespace = self.config.namespace
        try:
            pods = list_pods(self.v1, namespace, app_label, self.config.node_name)
        except API_ERRORS as e:
            raise PodLifecycleError(f"cannot list existing validation pods: {error_reason(e)}") from e

        deleted = 0
        for pod in pods.items or []:
            name = pod.metadata.name
            try:
                delete_pod(self.v1, name, namespace)
            except API_ERRORS as e:
                if isinstance(e, ApiException) and e.status == 404:
                    continue
                raise PodLifecycleError(f"cannot delete previous validation pod {name}: {error_reason(e)}") from e
            logger.info(f"Deleted previous validation pod {name}")
            deleted += 1
        return deleted

    def submit(self, pod):
        """Create the pod and return the name the API server gave it."""
        try:
            created = self.v1.create_namespaced_pod(namespace=self.config.namespace, body=pod)
        except API_ERRORS as e:
            raise PodLifecycleError(f"failed to create validation pod {pod.metadata.name}, err {error_reason(e)}") from e
        logger.info(f"Pod {created.metadata.name} created")
        return created.metadata.name

    def wait_for_pod(self, pod_name):
        """Poll the pod until it succeeds or the retry budget runs out."""
        for _ in range(self.retries):
            try:
                phase = get_pod_phase(self.v1, pod_name, self.config.namespace)
            except API_ERRORS as e:
                raise PodLifecycleError(f"failed to get pod {pod_name}, err {error_reason(e)}") from e
            if phase == constants.POD_PHASE_SUCCEEDED:
                logger.info(f"pod {pod_name} have run successfully")
                return
            logger.info(f"pod {pod_name} is currently in {phase} phase")
            self.sleep(self.interval)
        raise PodLifecycleError(f"gave up waiting for pod {pod_name} to be available")

    def run(self, template_path, app_label, gpu_resource_name=None):
        """Run a validation pod end to end."""
        template = load_pod_manifest(template_path)
        pod = build_verification_pod(template, self.pod_parameters(gpu_resource_name))
        self.supersede(app_label)
        pod_name = self.submit(pod)
        self.wait_for_pod(pod_name)
