"""NVIDIA PCI and mediated device enumeration from sysfs."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import constants

logger = logging.getLogger(__name__)

# VGA compatible and 3D controllers
GPU_CLASS_PREFIXES = ("0x0300", "0x0302")


@dataclass
class PciDevice:
    address: str
    vendor: str
    device_class: str
    driver: str


def _read(path):
    return Path(path).read_text().strip()


def _driver_name(device_path):
    try:
        return os.path.basename(os.readlink(os.path.join(device_path, "driver")))
    except OSError:
        return ""


def nvidia_gpus(devices_path=constants.PCI_DEVICES_PATH):
    """List NVIDIA GPUs with the kernel driver they are bound to."""
    gpus = []
    for address in sorted(os.listdir(devices_path)):
        device_path = os.path.join(devices_path, address)
        vendor = _read(os.path.join(device_path, "vendor"))
        if vendor != constants.NVIDIA_PCI_VENDOR_ID:
            continue
        device_class = _read(os.path.join(device_path, "class"))
        if not device_class.startswith(GPU_CLASS_PREFIXES):
            continue
        gpus.append(PciDevice(address, vendor, device_class, _driver_name(device_path)))
    return gpus


def mediated_devices(devices_path=constants.MDEV_DEVICES_PATH):
    """List mediated (vGPU) devices whose parent is an NVIDIA device."""
    devices = []
    for uuid in sorted(os.listdir(devices_path)):
        parent = os.path.dirname(os.path.realpath(os.path.join(devices_path, uuid)))
        try:
            vendor = _read(os.path.join(parent, "vendor"))
        except OSError:
            logger.debug(f"Skipping mediated device {uuid}: parent vendor unknown")
            continue
        if vendor == constants.NVIDIA_PCI_VENDOR_ID:
            devices.append(uuid)
    return devices
