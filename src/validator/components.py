"""Component validators.

Every validator follows the same four phases, driven by ``run_validation``:

1. clear the component's status files
2. probe readiness
3. optionally run a GPU workload pod
4. publish the status file chosen by the probe

A validator may decline to run at all (``required`` returns False), in which
case no status file is touched.
"""

import logging
import os

from . import constants, status
from .devchar import create_dev_char_symlinks
from .driver_root import detect_driver_root
from .errors import ProbeError, ValidatorError
from .k8s import get_node_labels
from .pci import mediated_devices, nvidia_gpus
from .resources import allocatable_gpu_resource_name, wait_for_gpu_resources
from .workload import WorkloadOrchestrator
from .workload_config import resolve_and_record

logger = logging.getLogger(__name__)


class ComponentValidator:
    """Shared shape of a component validator."""

    name = ""
    # status files removed before probing
    status_files = []
    has_workload = False

    def __init__(self, config, probes, clients=None):
        self.config = config
        self.probes = probes
        self.clients = clients

    def required(self):
        """Return False to skip validation on this node."""
        return True

    def probe(self):
        """Check readiness and return the status file to publish."""
        return self.status_files[0]

    def workload(self):
        pass

    def run_probe(self, command):
        self.probes.run(command, retry=self.config.with_wait)


def run_validation(validator):
    """Run the four validation phases; return True when a status file was published."""
    config = validator.config
    if not validator.required():
        return False

    for name in validator.status_files:
        status.clear(config.status_path(name))

    try:
        status_file = validator.probe()
        if validator.has_workload and config.with_workload:
            validator.workload()
    except ValidatorError:
        logger.error(f"{validator.name} is not ready")
        raise

    status.publish(config.status_path(status_file))
    return True


class DriverValidator(ComponentValidator):
    name = constants.COMPONENT_DRIVER
    status_files = [constants.DRIVER_STATUS_FILE, constants.HOST_DRIVER_STATUS_FILE]

    def __init__(self, config, probes, clients=None, resolve_root=detect_driver_root,
                 symlink_creator=create_dev_char_symlinks):
        super().__init__(config, probes, clients)
        self.resolve_root = resolve_root
        self.symlink_creator = symlink_creator

    def probe(self):
        driver_root = self.resolve_root()
        if not driver_root.host_driver:
            logger.info("Driver is not pre-installed on the host. Checking driver container status.")
            try:
                self.run_probe(["stat", constants.DRIVER_CONTAINER_READY_FILE])
            except ProbeError as e:
                raise ProbeError(f"error checking driver container status: {e}") from e

        self.run_probe(driver_root.probe_command())

        if not self.config.disable_dev_char_symlink_creation:
            logger.info("creating symlinks under /dev/char that correspond to NVIDIA character devices")
            self.symlink_creator(
                driver_root.driver_root,
                driver_root.host_driver,
                driver_root.create_device_nodes,
            )

        if driver_root.host_driver:
            return constants.HOST_DRIVER_STATUS_FILE
        return constants.DRIVER_STATUS_FILE


class NvidiaFsValidator(ComponentValidator):
    name = constants.COMPONENT_NVIDIA_FS
    status_files = [constants.NVIDIA_FS_STATUS_FILE]

    def probe(self):
        self.run_probe(["bash", "-c", "lsmod | grep nvidia_fs"])
        return constants.NVIDIA_FS_STATUS_FILE


class ToolkitValidator(ComponentValidator):
    name = constants.COMPONENT_TOOLKIT
    status_files = [constants.TOOLKIT_STATUS_FILE]

    def probe(self):
        # nvidia-smi only works if the toolkit injected the driver files
        self.run_probe([constants.NVIDIA_SMI])
        return constants.TOOLKIT_STATUS_FILE


class PluginValidator(ComponentValidator):
    name = constants.COMPONENT_PLUGIN
    status_files = [constants.PLUGIN_STATUS_FILE]
    has_workload = True
    template_path = constants.PLUGIN_WORKLOAD_POD_SPEC_PATH

    def __init__(self, config, probes, clients=None, orchestrator=None, discovery_sleep=None):
        super().__init__(config, probes, clients)
        self.orchestrator = orchestrator
        self.discovery_sleep = discovery_sleep

    def probe(self):
        kwargs = {"sleep": self.discovery_sleep} if self.discovery_sleep else {}
        wait_for_gpu_resources(self.clients.core_v1, self.config.node_name, **kwargs)
        return constants.PLUGIN_STATUS_FILE

    def workload(self):
        resource_name = allocatable_gpu_resource_name(self.clients.core_v1, self.config.node_name)
        orchestrator = self.orchestrator or WorkloadOrchestrator(
            self.clients.core_v1, self.clients.apps_v1, self.config
        )
        orchestrator.run(self.template_path, constants.PLUGIN_VALIDATOR_LABEL_VALUE, resource_name)


class CUDAValidator(ComponentValidator):
    name = constants.COMPONENT_CUDA
    status_files = [constants.CUDA_STATUS_FILE]
    has_workload = True
    template_path = constants.CUDA_WORKLOAD_POD_SPEC_PATH

    def __init__(self, config, probes, clients=None, orchestrator=None):
        super().__init__(config, probes, clients)
        self.orchestrator = orchestrator

    def workload(self):
        orchestrator = self.orchestrator or WorkloadOrchestrator(
            self.clients.core_v1, self.clients.apps_v1, self.config
        )
        orchestrator.run(self.template_path, constants.CUDA_VALIDATOR_LABEL_VALUE)


class MOFEDValidator(ComponentValidator):
    name = constants.COMPONENT_MOFED
    status_files = [constants.MOFED_STATUS_FILE]

    def required(self):
        if not self.config.gpu_direct_rdma_enabled:
            logger.info("GPUDirect RDMA is disabled, skipping MOFED driver validation...")
            return False
        labels = get_node_labels(self.clients.core_v1, self.config.node_name)
        if labels.get(constants.MELLANOX_DEVICE_LABEL_KEY) != "true":
            logger.info("No Mellanox device label found, skipping MOFED driver validation...")
            return False
        return True

    def probe(self):
        if self.config.use_host_mofed:
            self.run_probe(["bash", "-c", "lsmod | grep mlx5_core"])
        else:
            # MOFED driver container signals readiness with its own flag file
            self.run_probe(["stat", constants.MOFED_CONTAINER_READY_FILE])
        return constants.MOFED_STATUS_FILE


class _WorkloadConfigGated(ComponentValidator):
    """Validator that only runs for one GPU workload configuration."""

    workload_config = ""

    def required(self):
        current = resolve_and_record(self.clients.core_v1, self.config)
        if current != self.workload_config:
            logger.info(f"{self.name} not required on the node (gpuWorkloadConfig={current}). Skipping validation.")
            return False
        return True


class VfioPCIValidator(_WorkloadConfigGated):
    name = constants.COMPONENT_VFIO_PCI
    status_files = [constants.VFIO_PCI_STATUS_FILE]
    workload_config = constants.GPU_WORKLOAD_CONFIG_VM_PASSTHROUGH

    def __init__(self, config, probes, clients=None, list_gpus=nvidia_gpus):
        super().__init__(config, probes, clients)
        self.list_gpus = list_gpus

    def probe(self):
        try:
            gpus = self.list_gpus()
        except OSError as e:
            raise ProbeError(f"error getting NVIDIA PCI devices: {e}") from e
        for gpu in gpus:
            if gpu.driver != constants.VFIO_PCI_DRIVER:
                raise ProbeError(f"device not bound to 'vfio-pci'; device: {gpu.address} driver: '{gpu.driver}'")
        logger.info("Validation completed successfully - all devices are bound to vfio-pci")
        return constants.VFIO_PCI_STATUS_FILE


class VGPUManagerValidator(_WorkloadConfigGated):
    name = constants.COMPONENT_VGPU_MANAGER
    status_files = [constants.VGPU_MANAGER_STATUS_FILE, constants.HOST_VGPU_MANAGER_STATUS_FILE]
    workload_config = constants.GPU_WORKLOAD_CONFIG_VM_VGPU
    host_root = constants.HOST_ROOT
    driver_root = constants.DRIVER_CONTAINER_ROOT

    def probe(self):
        host_driver = os.path.lexists(self.host_root + constants.HOST_NVIDIA_SMI_PATH)
        root = self.host_root if host_driver else self.driver_root
        self.run_probe(["chroot", root, constants.NVIDIA_SMI])
        if host_driver:
            return constants.HOST_VGPU_MANAGER_STATUS_FILE
        return constants.VGPU_MANAGER_STATUS_FILE


class VGPUDevicesValidator(_WorkloadConfigGated):
    name = constants.COMPONENT_VGPU_DEVICES
    status_files = [constants.VGPU_DEVICES_STATUS_FILE]
    workload_config = constants.GPU_WORKLOAD_CONFIG_VM_VGPU

    def __init__(self, config, probes, clients=None, list_devices=mediated_devices):
        super().__init__(config, probes, clients)
        self.list_devices = list_devices

    def _count(self):
        try:
            return len(self.list_devices())
        except OSError as e:
            raise ProbeError(f"Error checking for vGPU devices on the host: {e}") from e

    def probe(self):
        if not self.config.with_wait:
            count = self._count()
            if count == 0:
                raise ProbeError("No vGPU devices found")
            logger.info(f"Found {count} vGPU devices")
        else:
            self.probes.poll(lambda: self._count() > 0, "search for vGPU devices")
        logger.info("Validation completed successfully - vGPU devices present on the host")
        return constants.VGPU_DEVICES_STATUS_FILE


class CCManagerValidator(ComponentValidator):
    name = constants.COMPONENT_CC_MANAGER
    status_files = [constants.CC_MANAGER_STATUS_FILE]

    def probe(self):
        labels = get_node_labels(self.clients.core_v1, self.config.node_name)
        if labels.get(constants.CC_CAPABLE_LABEL_KEY) != "true":
            logger.info("Not a CC capable node, skipping CC Manager validation")
            return constants.CC_MANAGER_STATUS_FILE
        self.run_probe(["stat", constants.CC_MANAGER_CONTAINER_READY_FILE])
        return constants.CC_MANAGER_STATUS_FILE


VALIDATORS = {
    cls.name: cls
    for cls in (
        DriverValidator,
        NvidiaFsValidator,
        ToolkitValidator,
        PluginValidator,
        CUDAValidator,
        MOFEDValidator,
        VfioPCIValidator,
        VGPUManagerValidator,
        VGPUDevicesValidator,
        CCManagerValidator,
    )
}

ERROR_PREFIXES = {
    constants.COMPONENT_DRIVER: "error validating driver installation",
    constants.COMPONENT_NVIDIA_FS: "error validating nvidia-fs driver installation",
    constants.COMPONENT_TOOLKIT: "error validating toolkit installation",
    constants.COMPONENT_CUDA: "error validating cuda workload",
    constants.COMPONENT_PLUGIN: "error validating plugin installation",
    constants.COMPONENT_MOFED: "error validating MOFED driver installation",
    constants.COMPONENT_METRICS: "error running validation-metrics exporter",
    constants.COMPONENT_VFIO_PCI: "error validating vfio-pci driver installation",
    constants.COMPONENT_VGPU_MANAGER: "error validating vGPU Manager installation",
    constants.COMPONENT_VGPU_DEVICES: "error validating vGPU devices",
    constants.COMPONENT_CC_MANAGER: "error validating CC Manager installation",
}
