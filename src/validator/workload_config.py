"""GPU workload configuration of the node."""

import logging

from . import constants, status
from .k8s import get_node_labels

logger = logging.getLogger(__name__)


def is_valid_workload_config(value):
    return value in constants.GPU_WORKLOAD_CONFIGS


def default_workload_config(override=""):
    """Return the default workload config, honouring a valid override."""
    if is_valid_workload_config(override):
        return override
    return constants.GPU_WORKLOAD_CONFIG_VM_PASSTHROUGH


def classify(labels, default):
    """Resolve the workload config from node labels."""
    value = labels.get(constants.GPU_WORKLOAD_CONFIG_LABEL_KEY)
    if value is None:
        logger.info(
            f"No {constants.GPU_WORKLOAD_CONFIG_LABEL_KEY} label found; "
            f"using default workload config: {default}"
        )
        return default
    if not is_valid_workload_config(value):
        logger.warning(f"{value} is an invalid workload config; using default workload config: {default}")
        return default
    return value


def resolve_and_record(v1, config):
    """Classify the node and persist the result as the workload-type status file."""
    default = default_workload_config(config.default_gpu_workload_config)
    workload_config = classify(get_node_labels(v1, config.node_name), default)
    logger.info(f"GPU workload configuration: {workload_config}")

    path = config.status_path(constants.WORKLOAD_TYPE_STATUS_FILE)
    try:
        status.publish(path, workload_config + "\n")
    except OSError as e:
        raise OSError(f"Error updating {constants.WORKLOAD_TYPE_STATUS_FILE} status file: {e}") from e
    return workload_config
