"""Validator exception types."""


class ValidatorError(Exception):
    """Base class for validation failures."""


class ClusterError(ValidatorError):
    """Raised when the Kubernetes client or node lookup fails."""


class ProbeError(ValidatorError):
    """Raised when a readiness probe fails."""


class ResourceDiscoveryError(ValidatorError):
    """Raised when GPU resources never show up on the node."""


class PodLifecycleError(ValidatorError):
    """Raised on list/create/delete/get failures for validation pods."""


DEV_CHAR_REMEDIATION = "\n".join(
    [
        "Failed to create symlinks under /dev/char that point to all possible NVIDIA character devices.",
        "The existence of these symlinks is required to address the following bug:",
        "",
        "    https://github.com/NVIDIA/gpu-operator/issues/430",
        "",
        "This bug impacts container runtimes configured with systemd cgroup management enabled.",
        "To disable the symlink creation, set the following envvar in ClusterPolicy:",
        "",
        "    validator:",
        "      driver:",
        "        env:",
        "        - name: DISABLE_DEV_CHAR_SYMLINK_CREATION",
        '          value: "true"',
    ]
)


class DevCharSymlinkError(ValidatorError):
    """Raised when /dev/char symlinks cannot be created.

    The message always ends with operator-facing remediation guidance.
    """

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"{cause}\n\n{DEV_CHAR_REMEDIATION}")
