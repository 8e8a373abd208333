"""Readiness probe execution with optional fixed-interval retry.

A probe is an external command whose exit status decides readiness. In wait
mode a failing probe is retried forever at a fixed interval; the process is
expected to be bounded externally by the pod's own startup timeout or by a
termination signal. The ``stop`` event exists so callers (and tests) can
break out of the loop deterministically.
"""

import logging
import subprocess
import threading

from .errors import ProbeError

logger = logging.getLogger(__name__)


def execute(command, silent=False):
    """Run a command once and return True when it exits 0."""
    stream = subprocess.DEVNULL if silent else None
    try:
        result = subprocess.run(command, stdout=stream, stderr=stream, check=False)
    except OSError as e:
        logger.warning(f"Unable to run {command[0]}: {e}")
        return False
    return result.returncode == 0


class ProbeRunner:
    """Runs probes once or until they succeed."""

    def __init__(self, sleep_interval_seconds, stop=None, executor=execute):
        self.sleep_interval_seconds = sleep_interval_seconds
        self.stop = stop or threading.Event()
        self.executor = executor

    def run(self, command, retry=False, silent=False):
        """Run a probe command, raising ProbeError if it does not succeed."""
        if not retry:
            if not self.executor(command, silent):
                raise ProbeError(f"command {' '.join(command)} failed")
            return

        def attempt():
            logger.info(f"running command {command[0]} with args {command[1:]}")
            return self.executor(command, silent)

        self.poll(attempt, f"command {' '.join(command)}")

    def poll(self, check, description):
        """Call ``check`` until it returns True or the stop event is set."""
        while not self.stop.is_set():
            if check():
                return
            logger.info(f"{description} failed, retrying after {self.sleep_interval_seconds} seconds")
            if self.stop.wait(self.sleep_interval_seconds):
                break
        raise ProbeError(f"{description} was cancelled before it succeeded")
