"""Validator entrypoint: validates one GPU stack component on this node and exits."""

import argparse
import logging
import os
import signal
import sys
from importlib import metadata

from . import constants, status
from .components import ERROR_PREFIXES, VALIDATORS, run_validation
from .config import ValidatorConfig, validate_config
from .errors import ValidatorError
from .k8s import KubeClients
from .probe import ProbeRunner

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT)


def get_version():
    try:
        return metadata.version("gpu-operator-validator")
    except metadata.PackageNotFoundError:
        return "unknown"


def _env(name, default=""):
    return os.environ.get(name, default)


def _parse_bool(value):
    if isinstance(value, bool):
        return value
    if value.lower() in ("1", "t", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "f", "false", "no", "off", ""):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value}")


def build_parser():
    """Build the argument parser; every flag falls back to an environment variable.

    Environment defaults stay strings so argparse converts them with the
    flag's type and reports bad values as usage errors.
    """
    parser = argparse.ArgumentParser(
        description="Validate GPU Operator components on the current node",
    )
    parser.add_argument("--version", action="version", version=get_version())
    parser.add_argument(
        "--kubeconfig", default=_env("KUBECONFIG"), help="absolute path to the kubeconfig file"
    )
    parser.add_argument(
        "--node-name", "-n", default=_env("NODE_NAME"),
        help="the name of the node to deploy plugin validation pod",
    )
    parser.add_argument(
        "--namespace", "-ns", default=_env("OPERATOR_NAMESPACE"),
        help="the namespace in which the operator resources are deployed",
    )
    parser.add_argument(
        "--with-wait", "-w", type=_parse_bool, nargs="?", const=True,
        default=_env("WITH_WAIT", "false"),
        help="indicates to wait for validation to complete successfully",
    )
    parser.add_argument(
        "--with-workload", "-l", type=_parse_bool, nargs="?", const=True,
        default=_env("WITH_WORKLOAD", "true"),
        help="indicates to validate with GPU workload (default: true)",
    )
    parser.add_argument(
        "--component", "-c", default=_env("COMPONENT"),
        help="the name of the operator component to validate",
    )
    parser.add_argument(
        "--cleanup-all", "-r", type=_parse_bool, nargs="?", const=True,
        default=_env("CLEANUP_ALL", "false"),
        help="indicates to cleanup all previous validation status files",
    )
    parser.add_argument(
        "--output-dir", "-o", default=_env("OUTPUT_DIR", constants.DEFAULT_STATUS_PATH),
        help=f"output directory where all validation status files are created (default: {constants.DEFAULT_STATUS_PATH})",
    )
    parser.add_argument(
        "--sleep-interval-seconds", "-s", type=int,
        default=_env("SLEEP_INTERVAL_SECONDS", str(constants.DEFAULT_SLEEP_INTERVAL_SECONDS)),
        help="sleep interval in seconds between command retries",
    )
    parser.add_argument(
        "--mig-strategy", "-m", default=_env("MIG_STRATEGY", constants.MIG_STRATEGY_SINGLE),
        help="MIG Strategy",
    )
    parser.add_argument(
        "--metrics-port", "-p", type=int, default=_env("METRICS_PORT", "0"),
        help="port on which the metrics will be exposed. 0 means disabled.",
    )
    parser.add_argument(
        "--default-gpu-workload-config", "-g", default=_env("DEFAULT_GPU_WORKLOAD_CONFIG"),
        help="default GPU workload config. determines what components to validate by default "
        "when sandbox workloads are enabled in the cluster.",
    )
    parser.add_argument(
        "--disable-dev-char-symlink-creation", type=_parse_bool, nargs="?", const=True,
        default=_env(constants.DISABLE_DEV_CHAR_SYMLINK_CREATION_ENV, "false"),
        help="disable creation of symlinks under /dev/char corresponding to NVIDIA character devices",
    )
    return parser


def handle_signal(signum, frame):
    """Exit immediately on termination signals."""
    logger.critical(f"Exiting due to signal [{signal.Signals(signum).name}] notification for pid [{os.getpid()}]")
    os._exit(1)


def install_signal_handlers():
    for sig in TERMINATION_SIGNALS:
        signal.signal(sig, handle_signal)


def dispatch(config, probes=None, clients=None, metrics_runner=None, validators=None):
    """Validate the configured component, prefixing failures with the component."""
    component = config.component
    probes = probes or ProbeRunner(config.sleep_interval_seconds)
    clients = clients or KubeClients(config.kubeconfig)
    validators = validators or VALIDATORS

    try:
        if component == constants.COMPONENT_METRICS:
            if metrics_runner is None:
                raise ValidatorError("the validation-metrics exporter is provided by a separate command")
            return metrics_runner(config)

        validator_cls = validators.get(component)
        if validator_cls is None:
            raise ValidatorError(f"invalid component specified for validation: {component}")
        return run_validation(validator_cls(config, probes, clients))
    except (ValidatorError, OSError) as e:
        raise ValidatorError(f"{ERROR_PREFIXES.get(component, 'error validating ' + component)}: {e}") from e


def main(argv=None):
    """Main validator entrypoint."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    logger.info(f"version: {get_version()}")
    install_signal_handlers()

    config = ValidatorConfig.from_args(args)
    try:
        validate_config(config)
        status.prepare_output_dir(config.output_dir, config.cleanup_all)
        dispatch(config)
    except (ValueError, ValidatorError, OSError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
