"""Shared fixtures: configuration, fake probes and fake Kubernetes objects."""

import threading
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from validator.config import ValidatorConfig
from validator.errors import ProbeError


class FakeProbes:
    """Records probe commands; commands listed in ``failing`` fail."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.commands = []
        self.stop = threading.Event()

    def run(self, command, retry=False, silent=False):
        self.commands.append((list(command), retry))
        if " ".join(command) in self.failing:
            raise ProbeError(f"command {' '.join(command)} failed")

    def poll(self, check, description):
        if not check():
            raise ProbeError(f"{description} was cancelled before it succeeded")


def make_node(name="node-1", labels=None, capacity=None, allocatable=None):
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name, labels=labels),
        status=client.V1NodeStatus(capacity=capacity, allocatable=allocatable),
    )


def make_pod(name, phase=None):
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1PodStatus(phase=phase),
    )


class FakeClients:
    def __init__(self, core_v1=None, apps_v1=None):
        self.core_v1 = core_v1 or MagicMock()
        self.apps_v1 = apps_v1 or MagicMock()


@pytest.fixture
def make_config(tmp_path):
    def _make(component="driver", **overrides):
        values = {
            "component": component,
            "output_dir": str(tmp_path / "validations"),
            "node_name": "node-1",
            "namespace": "gpu-operator",
        }
        values.update(overrides)
        config = ValidatorConfig(**values)
        (tmp_path / "validations").mkdir(exist_ok=True)
        return config

    return _make


@pytest.fixture
def probes():
    return FakeProbes()
