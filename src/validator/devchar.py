"""Symlinks under /dev/char for NVIDIA character devices.

Container runtimes using systemd cgroup management resolve device access
through /dev/char/<major>:<minor>, which NVIDIA device nodes do not get by
default.
"""

import logging
import os
import stat

from . import constants
from .errors import DevCharSymlinkError
from .pci import nvidia_gpus
from .probe import execute

logger = logging.getLogger(__name__)

DEVICE_PREFIX = "nvidia"
CAPS_DIR = "nvidia-caps"


def device_node_commands(driver_root, gpu_count):
    """nvidia-modprobe invocations that load the modules and create device nodes."""
    base = ["chroot", driver_root, "nvidia-modprobe"]
    commands = [base + ["-u", "-m"]]
    for minor in range(gpu_count):
        commands.append(base + ["-c", str(minor)])
    return commands


def _candidate_devices(dev_dir):
    names = [name for name in os.listdir(dev_dir) if name.startswith(DEVICE_PREFIX) and name != CAPS_DIR]
    caps_dir = os.path.join(dev_dir, CAPS_DIR)
    if os.path.isdir(caps_dir):
        names.extend(os.path.join(CAPS_DIR, name) for name in os.listdir(caps_dir))
    return sorted(names)


def _link(dev_char_path, target):
    st = os.stat(target)
    if not stat.S_ISCHR(st.st_mode):
        return False
    link = os.path.join(dev_char_path, f"{os.major(st.st_rdev)}:{os.minor(st.st_rdev)}")
    if os.path.islink(link) and os.readlink(link) == target:
        return False
    # stale symlink or a plain file left in the way
    if os.path.lexists(link):
        os.remove(link)
    os.symlink(target, link)
    logger.debug(f"Created symlink {link} -> {target}")
    return True


def create_dev_char_symlinks(
    driver_root,
    host_driver,
    create_device_nodes,
    dev_char_path=constants.HOST_DEV_CHAR_PATH,
    executor=execute,
    gpu_count=None,
):
    """Create /dev/char symlinks for every NVIDIA character device.

    A host driver is validated from a privileged container, so its device
    nodes are found under / rather than under the driver root.
    """
    dev_root = "/" if host_driver else driver_root
    try:
        if create_device_nodes:
            if gpu_count is None:
                gpu_count = len(nvidia_gpus())
            for command in device_node_commands(driver_root, gpu_count):
                if not executor(command, True):
                    raise OSError(f"error creating device nodes: {' '.join(command)} failed")

        os.makedirs(dev_char_path, exist_ok=True)
        dev_dir = os.path.join(dev_root, "dev")
        created = 0
        for name in _candidate_devices(dev_dir):
            if _link(dev_char_path, os.path.join(dev_dir, name)):
                created += 1
    except OSError as e:
        raise DevCharSymlinkError(f"error creating symlinks: {e}") from e
    logger.info(f"Created {created} symlinks under {dev_char_path}")
    return created
