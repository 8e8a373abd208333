import itertools

import pytest

from validator.driver_root import DriverRoot, can_chroot, detect_driver_root, host_smi_present, select_driver_root


@pytest.fixture
def roots(tmp_path):
    host = tmp_path / "host"
    container = tmp_path / "run-nvidia-driver"
    (host / "usr" / "bin").mkdir(parents=True)
    container.mkdir()
    return host, container


def _detect(host, container):
    return detect_driver_root(str(host), str(container), "/home/kubernetes/bin/nvidia")


def test_host_preinstalled_driver(roots):
    host, container = roots
    (host / "usr" / "bin" / "nvidia-smi").write_text("binary")

    root = _detect(host, container)
    assert root == DriverRoot(str(host), True, "nvidia-smi", str(host), True)
    assert root.probe_command() == ["chroot", str(host), "nvidia-smi"]


def test_empty_host_binary_is_ignored(roots):
    host, container = roots
    (host / "usr" / "bin" / "nvidia-smi").write_text("")
    (container / "dev").mkdir()

    root = _detect(host, container)
    assert not root.host_driver
    assert root.chroot_root == str(container)


def test_custom_host_driver_path_when_container_root_not_chrootable(roots):
    host, container = roots

    root = _detect(host, container)
    assert root.chroot_root == str(host)
    assert root.host_driver
    assert root.smi_command == "/home/kubernetes/bin/nvidia/bin/nvidia-smi"
    assert root.driver_root == str(container)
    assert not root.create_device_nodes


def test_driver_container_root(roots):
    host, container = roots
    (container / "dev").mkdir()

    root = _detect(host, container)
    assert root == DriverRoot(str(container), False, "nvidia-smi", str(container), True)


def test_probe_helpers(roots):
    host, container = roots
    assert not host_smi_present(str(host))
    assert not can_chroot(str(container))
    (container / "dev").mkdir()
    assert can_chroot(str(container))


@pytest.mark.parametrize("host_present,chrootable", list(itertools.product([True, False], repeat=2)))
def test_selection_is_exhaustive_and_exclusive(host_present, chrootable):
    root = select_driver_root(host_present, chrootable, "/host", "/run/nvidia/driver", "/custom")
    if host_present:
        expected = "host-canonical"
    elif not chrootable:
        expected = "host-custom"
    else:
        expected = "chrootable"

    outcome = {
        ("/host", "nvidia-smi", True): "host-canonical",
        ("/host", "/custom/bin/nvidia-smi", False): "host-custom",
        ("/run/nvidia/driver", "nvidia-smi", True): "chrootable",
    }[(root.chroot_root, root.smi_command, root.create_device_nodes)]
    assert outcome == expected
