"""Immutable validator configuration captured once at process start."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from . import constants


def _env_true(environ, name):
    return environ.get(name, "") == "true"


@dataclass(frozen=True)
class ValidatorConfig:
    """Settings shared by every component validator."""

    component: str
    output_dir: str = constants.DEFAULT_STATUS_PATH
    node_name: str = ""
    namespace: str = ""
    kubeconfig: Optional[str] = None
    with_wait: bool = False
    with_workload: bool = True
    cleanup_all: bool = False
    sleep_interval_seconds: int = constants.DEFAULT_SLEEP_INTERVAL_SECONDS
    mig_strategy: str = constants.MIG_STRATEGY_SINGLE
    metrics_port: int = 0
    default_gpu_workload_config: str = ""
    disable_dev_char_symlink_creation: bool = False

    # Workload pod parameters
    validator_image: str = ""
    image_pull_policy: str = ""
    image_pull_secrets: List[str] = field(default_factory=list)
    runtime_class: str = ""

    # MOFED
    gpu_direct_rdma_enabled: bool = False
    use_host_mofed: bool = False

    @classmethod
    def from_args(cls, args, environ=None):
        """Build the configuration from parsed CLI args and the process environment."""
        environ = os.environ if environ is None else environ
        pull_secrets = environ.get(constants.VALIDATOR_IMAGE_PULL_SECRETS_ENV, "")
        return cls(
            component=args.component,
            output_dir=args.output_dir,
            node_name=args.node_name,
            namespace=args.namespace,
            kubeconfig=args.kubeconfig or None,
            with_wait=args.with_wait,
            with_workload=args.with_workload,
            cleanup_all=args.cleanup_all,
            sleep_interval_seconds=args.sleep_interval_seconds,
            mig_strategy=args.mig_strategy,
            metrics_port=args.metrics_port,
            default_gpu_workload_config=args.default_gpu_workload_config,
            disable_dev_char_symlink_creation=args.disable_dev_char_symlink_creation,
            validator_image=environ.get(constants.VALIDATOR_IMAGE_ENV, ""),
            image_pull_policy=environ.get(constants.VALIDATOR_IMAGE_PULL_POLICY_ENV, ""),
            image_pull_secrets=pull_secrets.split(",") if pull_secrets else [],
            runtime_class=environ.get(constants.VALIDATOR_RUNTIME_CLASS_ENV, ""),
            gpu_direct_rdma_enabled=_env_true(environ, constants.GPU_DIRECT_RDMA_ENABLED_ENV),
            use_host_mofed=_env_true(environ, constants.USE_HOST_MOFED_ENV),
        )

    def status_path(self, name):
        """Return the full path of a status file under the output directory."""
        return os.path.join(self.output_dir, name)


def validate_config(config):
    """Check per-component flag requirements."""
    component = config.component
    if not component:
        raise ValueError("invalid -c <component-name> flag: must not be empty string")
    if component not in constants.COMPONENTS:
        raise ValueError(f"invalid -c <component-name> flag value: {component}")
    if component == constants.COMPONENT_PLUGIN:
        if not config.node_name:
            raise ValueError("invalid -n <node-name> flag: must not be empty string for plugin validation")
        if not config.namespace:
            raise ValueError("invalid -ns <namespace> flag: must not be empty string for plugin validation")
    if component == constants.COMPONENT_CUDA and not config.namespace:
        raise ValueError("invalid -ns <namespace> flag: must not be empty string for cuda validation")
    if component == constants.COMPONENT_METRICS:
        if config.metrics_port == 0:
            raise ValueError("invalid -p <port> flag: must not be empty or 0 for the metrics component")
        if not config.node_name:
            raise ValueError("invalid -n <node-name> flag: must not be empty string for metrics exporter")
    if not config.node_name and component in (
        constants.COMPONENT_VFIO_PCI,
        constants.COMPONENT_VGPU_MANAGER,
        constants.COMPONENT_VGPU_DEVICES,
    ):
        raise ValueError(f"invalid -n <node-name> flag: must not be empty string for {component} validation")
