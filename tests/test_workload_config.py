from unittest.mock import MagicMock

import pytest

from conftest import make_node
from validator import constants
from validator.workload_config import classify, default_workload_config, resolve_and_record

LABEL = constants.GPU_WORKLOAD_CONFIG_LABEL_KEY


@pytest.mark.parametrize("value", constants.GPU_WORKLOAD_CONFIGS)
def test_valid_label_is_used_verbatim(value):
    assert classify({LABEL: value}, "vm-passthrough") == value


@pytest.mark.parametrize("labels", [{}, {LABEL: "bare-metal"}, {LABEL: ""}, {"other": "container"}])
def test_absent_or_invalid_label_falls_back_to_default(labels):
    assert classify(labels, "container") == "container"


@pytest.mark.parametrize(
    "override,expected",
    [
        ("", "vm-passthrough"),
        ("bogus", "vm-passthrough"),
        ("container", "container"),
        ("vm-vgpu", "vm-vgpu"),
    ],
)
def test_default_is_always_valid(override, expected):
    assert default_workload_config(override) == expected
    assert default_workload_config(override) in constants.GPU_WORKLOAD_CONFIGS


def test_resolve_and_record_persists_workload_type(make_config):
    config = make_config("vfio-pci", default_gpu_workload_config="container")
    v1 = MagicMock()
    v1.read_node.return_value = make_node(labels={LABEL: "not-a-mode"})

    assert resolve_and_record(v1, config) == "container"
    with open(config.status_path("workload-type")) as f:
        assert f.read() == "container\n"
    v1.read_node.assert_called_once_with(name="node-1")
