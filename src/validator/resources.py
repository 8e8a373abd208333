"""GPU resource discovery on the node."""

import logging
import time

from kubernetes.utils import parse_quantity

from . import constants
from .errors import ResourceDiscoveryError
from .k8s import get_node

logger = logging.getLogger(__name__)


def _quantity(value):
    try:
        return parse_quantity(value)
    except ValueError:
        logger.warning(f"Ignoring unparsable resource quantity {value!r}")
        return 0


def available_mig_resource_name(resources):
    """Return the first MIG resource with at least one unit, or None."""
    for name, quantity in (resources or {}).items():
        if name.startswith(constants.MIG_GPU_RESOURCE_PREFIX) and _quantity(quantity) >= 1:
            logger.debug(f"Found MIG GPU resource name {name} quantity {quantity}")
            return name
    return None


def available_generic_resource_name(resources):
    """Return the first generic GPU resource with at least one unit, or None."""
    for name, quantity in (resources or {}).items():
        if name.startswith(constants.GENERIC_GPU_RESOURCE_TYPE) and _quantity(quantity) >= 1:
            logger.debug(f"Found GPU resource name {name} quantity {quantity}")
            return name
    return None


def select_gpu_resource_name(resources):
    """Pick the resource to schedule against; MIG slices win over whole GPUs."""
    return available_mig_resource_name(resources) or available_generic_resource_name(resources)


def wait_for_gpu_resources(
    v1,
    node_name,
    retries=constants.GPU_RESOURCE_DISCOVERY_WAIT_RETRIES,
    interval=constants.GPU_RESOURCE_DISCOVERY_INTERVAL_SECONDS,
    sleep=time.sleep,
):
    """Wait until the node capacity advertises GPU resources."""
    for retry in range(1, retries + 1):
        node = get_node(v1, node_name)
        if select_gpu_resource_name(node.status.capacity):
            return
        logger.info(f"GPU resources are not yet discovered by the node, retry: {retry}")
        sleep(interval)
    raise ResourceDiscoveryError("GPU resources are not discovered by the node")


def allocatable_gpu_resource_name(v1, node_name):
    """Return the allocatable GPU resource name to request for a workload."""
    node = get_node(v1, node_name)
    name = select_gpu_resource_name(node.status.allocatable)
    if not name:
        raise ResourceDiscoveryError("Unable to find any allocatable GPU resource")
    return name
