"""Driver root resolution.

The validator runs with the host root mounted at /host and the driver
container root mounted at /run/nvidia/driver. Possible mappings
(container path = host path):

  a) /host = /               /run/nvidia/driver = /run/nvidia/driver
  b) /host = /               /run/nvidia/driver = /home/kubernetes/bin/nvidia
  c) /host = /               /host/usr/bin/nvidia-smi present
  d) /host = /custom-driver  /host/usr/bin/nvidia-smi present
"""

import logging
import os
from dataclasses import dataclass

from . import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriverRoot:
    # directory to chroot into before running nvidia-smi
    chroot_root: str
    # driver pre-installed on the host rather than by the driver container
    host_driver: bool
    smi_command: str
    # root used for dev-char symlinks and device nodes
    driver_root: str
    create_device_nodes: bool

    def probe_command(self):
        return ["chroot", self.chroot_root, self.smi_command]


def select_driver_root(
    host_smi_present,
    container_root_chrootable,
    host_root=constants.HOST_ROOT,
    container_root=constants.DRIVER_CONTAINER_ROOT,
    driver_host_root=constants.DRIVER_HOST_ROOT,
):
    """Pick the driver root from the detected filesystem facts."""
    # cases c) and d)
    if host_smi_present:
        logger.info("Detected pre-installed driver on the host")
        return DriverRoot(host_root, True, constants.NVIDIA_SMI, host_root, True)

    # case b)
    if not container_root_chrootable:
        logger.info(f"Detected pre-installed driver on the host on {driver_host_root} driver path")
        return DriverRoot(
            host_root,
            True,
            os.path.join(driver_host_root, "bin", constants.NVIDIA_SMI),
            container_root,
            False,
        )

    # case a)
    return DriverRoot(container_root, False, constants.NVIDIA_SMI, container_root, True)


def host_smi_present(host_root=constants.HOST_ROOT):
    """Check for a non-empty nvidia-smi under the host root."""
    path = host_root + constants.HOST_NVIDIA_SMI_PATH
    try:
        return os.lstat(path).st_size != 0
    except OSError:
        return False


def can_chroot(container_root=constants.DRIVER_CONTAINER_ROOT):
    """Check the driver container root holds the directories chroot needs."""
    for subdir in constants.CHROOT_ESSENTIAL_DIRS:
        if not os.path.exists(os.path.join(container_root, subdir)):
            logger.info(f"Detected driver root on the host missing {subdir}, which means can not chroot")
            return False
    return True


def detect_driver_root(
    host_root=constants.HOST_ROOT,
    container_root=constants.DRIVER_CONTAINER_ROOT,
    driver_host_root=constants.DRIVER_HOST_ROOT,
):
    """Resolve the driver root for this node."""
    host_present = host_smi_present(host_root)
    # chroot check only matters once the host binary is ruled out
    chrootable = True if host_present else can_chroot(container_root)
    return select_driver_root(host_present, chrootable, host_root, container_root, driver_host_root)
