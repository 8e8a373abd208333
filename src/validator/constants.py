"""Validator constants: components, status files, labels and paths."""

# Components
COMPONENT_DRIVER = "driver"
COMPONENT_NVIDIA_FS = "nvidia-fs"
COMPONENT_TOOLKIT = "toolkit"
COMPONENT_CUDA = "cuda"
COMPONENT_PLUGIN = "plugin"
COMPONENT_MOFED = "mofed"
COMPONENT_METRICS = "metrics"
COMPONENT_VFIO_PCI = "vfio-pci"
COMPONENT_VGPU_MANAGER = "vgpu-manager"
COMPONENT_VGPU_DEVICES = "vgpu-devices"
COMPONENT_CC_MANAGER = "cc-manager"

COMPONENTS = [
    COMPONENT_DRIVER,
    COMPONENT_NVIDIA_FS,
    COMPONENT_TOOLKIT,
    COMPONENT_CUDA,
    COMPONENT_PLUGIN,
    COMPONENT_MOFED,
    COMPONENT_METRICS,
    COMPONENT_VFIO_PCI,
    COMPONENT_VGPU_MANAGER,
    COMPONENT_VGPU_DEVICES,
    COMPONENT_CC_MANAGER,
]

# Status files, created under the output directory
DEFAULT_STATUS_PATH = "/run/nvidia/validations"
DRIVER_STATUS_FILE = "driver-ready"
HOST_DRIVER_STATUS_FILE = "host-driver-ready"
NVIDIA_FS_STATUS_FILE = "nvidia-fs-ready"
TOOLKIT_STATUS_FILE = "toolkit-ready"
PLUGIN_STATUS_FILE = "plugin-ready"
CUDA_STATUS_FILE = "cuda-ready"
MOFED_STATUS_FILE = "mofed-ready"
VFIO_PCI_STATUS_FILE = "vfio-pci-ready"
VGPU_MANAGER_STATUS_FILE = "vgpu-manager-ready"
HOST_VGPU_MANAGER_STATUS_FILE = "host-vgpu-manager-ready"
VGPU_DEVICES_STATUS_FILE = "vgpu-devices-ready"
CC_MANAGER_STATUS_FILE = "cc-manager-ready"
WORKLOAD_TYPE_STATUS_FILE = "workload-type"

# Readiness flags written by sibling containers
DRIVER_CONTAINER_READY_FILE = "/run/nvidia/validations/.driver-ctr-ready"
CC_MANAGER_CONTAINER_READY_FILE = "/run/nvidia/validations/.cc-manager-ctr-ready"
MOFED_CONTAINER_READY_FILE = "/run/mellanox/drivers/.driver-ready"

# Driver locations
HOST_ROOT = "/host"
HOST_DEV_CHAR_PATH = "/host-dev-char"
DRIVER_CONTAINER_ROOT = "/run/nvidia/driver"
DRIVER_HOST_ROOT = "/home/kubernetes/bin/nvidia"
NVIDIA_SMI = "nvidia-smi"
HOST_NVIDIA_SMI_PATH = "/usr/bin/nvidia-smi"
# dev (contains sh, bash) must exist to chroot into the driver root
CHROOT_ESSENTIAL_DIRS = ["dev"]

# Retry budgets
DEFAULT_SLEEP_INTERVAL_SECONDS = 5
POD_CREATION_WAIT_RETRIES = 60
POD_CREATION_SLEEP_INTERVAL_SECONDS = 5
GPU_RESOURCE_DISCOVERY_WAIT_RETRIES = 30
GPU_RESOURCE_DISCOVERY_INTERVAL_SECONDS = 5

# GPU resources exposed by the device plugin
GENERIC_GPU_RESOURCE_TYPE = "nvidia.com/gpu"
MIG_GPU_RESOURCE_PREFIX = "nvidia.com/mig-"
MIG_STRATEGY_SINGLE = "single"

# Workload validation pods
PLUGIN_WORKLOAD_POD_SPEC_PATH = "/var/nvidia/manifests/plugin-workload-validation.yaml"
CUDA_WORKLOAD_POD_SPEC_PATH = "/var/nvidia/manifests/cuda-workload-validation.yaml"
CUDA_VALIDATOR_LABEL_VALUE = "nvidia-cuda-validator"
PLUGIN_VALIDATOR_LABEL_VALUE = "nvidia-device-plugin-validator"
VALIDATOR_DAEMONSET_NAME = "nvidia-operator-validator"
POD_PHASE_SUCCEEDED = "Succeeded"

# Environment variables
VALIDATOR_IMAGE_ENV = "VALIDATOR_IMAGE"
VALIDATOR_IMAGE_PULL_POLICY_ENV = "VALIDATOR_IMAGE_PULL_POLICY"
VALIDATOR_IMAGE_PULL_SECRETS_ENV = "VALIDATOR_IMAGE_PULL_SECRETS"
VALIDATOR_RUNTIME_CLASS_ENV = "VALIDATOR_RUNTIME_CLASS"
GPU_DIRECT_RDMA_ENABLED_ENV = "GPU_DIRECT_RDMA_ENABLED"
USE_HOST_MOFED_ENV = "USE_HOST_MOFED"
DISABLE_DEV_CHAR_SYMLINK_CREATION_ENV = "DISABLE_DEV_CHAR_SYMLINK_CREATION"

# Node labels
MELLANOX_DEVICE_LABEL_KEY = "feature.node.kubernetes.io/pci-15b3.present"
CC_CAPABLE_LABEL_KEY = "nvidia.com/cc.capable"
GPU_WORKLOAD_CONFIG_LABEL_KEY = "nvidia.com/gpu.workload.config"

# GPU workload configurations
GPU_WORKLOAD_CONFIG_CONTAINER = "container"
GPU_WORKLOAD_CONFIG_VM_PASSTHROUGH = "vm-passthrough"
GPU_WORKLOAD_CONFIG_VM_VGPU = "vm-vgpu"
GPU_WORKLOAD_CONFIGS = [
    GPU_WORKLOAD_CONFIG_CONTAINER,
    GPU_WORKLOAD_CONFIG_VM_PASSTHROUGH,
    GPU_WORKLOAD_CONFIG_VM_VGPU,
]

# sysfs
PCI_DEVICES_PATH = "/sys/bus/pci/devices"
MDEV_DEVICES_PATH = "/sys/bus/mdev/devices"
NVIDIA_PCI_VENDOR_ID = "0x10de"
VFIO_PCI_DRIVER = "vfio-pci"
