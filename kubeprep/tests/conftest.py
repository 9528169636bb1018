import subprocess

import pytest

from kubeprep.modules.kubeadm.config import InstallerConfig
from kubeprep.modules.kubeadm.installer import control_plane, packages
from kubeprep.modules.kubeadm.installer.core import NodeInstaller

UBUNTU_2404 = """PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04.1 LTS (Noble Numbat)"
ID=ubuntu
ID_LIKE=debian
"""

UBUNTU_2204 = UBUNTU_2404.replace("24.04", "22.04").replace("Noble Numbat", "Jammy Jellyfish")

FSTAB = """# /etc/fstab: static file system information.
UUID=1234 / ext4 defaults 0 1
/swap.img\tnone\tswap\tsw\t0\t0
"""

CONTAINERD_DEFAULT = """disabled_plugins = []
version = 2

[plugins]
  [plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]
    BinaryName = ""
    SystemdCgroup = false
"""

JOIN_COMMAND = "kubeadm join 10.0.0.10:6443 --token abcdef.0123456789abcdef --discovery-token-ca-cert-hash sha256:feed"

# Every host file the installer may write
TARGET_FILES = [
    "etc/modules-load.d/k8s.conf",
    "etc/sysctl.d/99-kubernetes.conf",
    "etc/containerd/config.toml",
    "etc/systemd/system/containerd.service.d/override.conf",
    "etc/crictl.yaml",
    "etc/apt/sources.list.d/kubernetes.list",
    "etc/default/kubelet",
]


class FakeRun:
    """Stands in for subprocess.run, recording every command."""

    def __init__(self):
        self.calls = []
        self.inputs = []
        self.envs = []
        self._outputs = {}
        self._failures = {}

    def respond(self, *prefix, stdout=""):
        self._outputs[tuple(prefix)] = stdout

    def fail(self, *prefix, returncode=1, stderr="boom"):
        self._failures[tuple(prefix)] = (returncode, stderr)

    @staticmethod
    def _match(argv, table):
        for prefix, value in table.items():
            if tuple(argv[:len(prefix)]) == prefix:
                return value
        return None

    def __call__(self, argv, input=None, stdout=None, stderr=None, env=None, check=False):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        self.envs.append(env)

        failure = self._match(argv, self._failures)
        if failure is not None:
            returncode, err = failure
            return subprocess.CompletedProcess(argv, returncode, b"", err.encode())

        out = self._match(argv, self._outputs) or ""
        return subprocess.CompletedProcess(argv, 0, out.encode(), b"")

    @property
    def commands(self):
        return [" ".join(argv) for argv in self.calls]

    def ran(self, *prefix):
        return any(tuple(argv[:len(prefix)]) == prefix for argv in self.calls)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in InstallerConfig.model_fields:
        monkeypatch.delenv(f"KUBEPREP_{name.upper()}", raising=False)
    monkeypatch.delenv("SUDO_USER", raising=False)


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    fake.respond("containerd", "config", "default", stdout=CONTAINERD_DEFAULT)
    fake.respond("kubeadm", "token", "create", stdout=JOIN_COMMAND + "\n")
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


class FakeResponse:
    content = b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n"

    def raise_for_status(self):
        pass


@pytest.fixture(autouse=True)
def network(monkeypatch):
    """Keep tests off the network and record what would have been fetched."""
    calls = {"get": [], "taint": [], "kubeconfig": []}

    def fake_get(url, timeout=None):
        calls["get"].append(url)
        return FakeResponse()

    def fake_load_kubeconfig(path):
        calls["kubeconfig"].append(path)
        return path

    def fake_remove_node_taint(key, effect="NoSchedule", api=None):
        calls["taint"].append((key, effect))
        return ["node-1"]

    monkeypatch.setattr(packages.requests, "get", fake_get)
    monkeypatch.setattr(control_plane, "load_kubeconfig", fake_load_kubeconfig)
    monkeypatch.setattr(control_plane, "remove_node_taint", fake_remove_node_taint)
    return calls


@pytest.fixture
def host_root(tmp_path):
    root = tmp_path / "host"
    (root / "etc/kubernetes").mkdir(parents=True)
    (root / "etc/os-release").write_text(UBUNTU_2404)
    (root / "etc/fstab").write_text(FSTAB)
    (root / "etc/kubernetes/admin.conf").write_text("apiVersion: v1\nkind: Config\n")
    return root


@pytest.fixture
def installer_config(host_root):
    return InstallerConfig(host_root=host_root)


@pytest.fixture
def installer(installer_config):
    return NodeInstaller(installer_config)
