import os

import pytest
import requests

from kubeprep.modules.kubeadm.installer import control_plane, host, packages, runtime, service
from kubeprep.modules.kubeadm.installer.core import CommandError, InstallerError, NodeInstaller
from kubeprep.modules.kubeadm.installer.preflight import (
    UnsupportedDistributionError,
    check_distribution,
)
from kubeprep.modules.kubeadm.models import RunConfig
from kubeprep.modules.kubeadm.utils import resolve_invoking_user

from .conftest import UBUNTU_2204

WORKER = RunConfig()
SINGLE = RunConfig.from_flags(single=True)


def test_check_distribution_accepts_ubuntu_2404(installer):
    check_distribution(installer, WORKER)


def test_check_distribution_rejects_other_release(installer, host_root):
    (host_root / "etc/os-release").write_text(UBUNTU_2204)
    with pytest.raises(UnsupportedDistributionError) as exc:
        check_distribution(installer, WORKER)
    assert exc.value.exit_code == 1
    assert "22.04" in str(exc.value)


def test_check_distribution_without_os_release(installer, host_root):
    (host_root / "etc/os-release").unlink()
    with pytest.raises(UnsupportedDistributionError):
        check_distribution(installer, WORKER)


def test_disable_swap(installer, host_root, fake_run):
    host.disable_swap(installer, WORKER)
    assert fake_run.calls == [["swapoff", "-a"]]
    assert "#/swap.img\tnone\tswap" in (host_root / "etc/fstab").read_text()


def test_disable_swap_tolerates_swapoff_failure(installer, host_root, fake_run):
    fake_run.fail("swapoff", returncode=255)
    host.disable_swap(installer, WORKER)
    assert "#/swap.img" in (host_root / "etc/fstab").read_text()


def test_disable_swap_keeps_undecodable_bytes(installer, host_root, fake_run):
    (host_root / "etc/fstab").write_bytes(b"# caf\xe9\n/swap.img none swap sw 0 0\n")
    host.disable_swap(installer, WORKER)
    assert (host_root / "etc/fstab").read_bytes() == b"# caf\xe9\n#/swap.img none swap sw 0 0\n"


def test_read_file_wraps_decode_errors(installer, host_root):
    (host_root / "etc/fstab").write_bytes(b"\xff\xfe\n")
    with pytest.raises(InstallerError, match="Failed to read /etc/fstab"):
        installer.read_file("/etc/fstab")


def test_disable_swap_without_fstab(installer, host_root, fake_run):
    (host_root / "etc/fstab").unlink()
    host.disable_swap(installer, WORKER)
    assert not (host_root / "etc/fstab").exists()


def test_configure_kernel(installer, host_root, fake_run):
    host.configure_kernel(installer, WORKER)

    assert (host_root / "etc/modules-load.d/k8s.conf").read_text() == "overlay\nbr_netfilter\n"
    assert (host_root / "etc/sysctl.d/99-kubernetes.conf").read_text() == (
        "net.bridge.bridge-nf-call-iptables=1\n"
        "net.bridge.bridge-nf-call-ip6tables=1\n"
        "net.ipv4.ip_forward=1\n"
    )
    assert fake_run.commands == ["modprobe overlay", "modprobe br_netfilter", "sysctl --system"]


def test_install_base_packages(installer, fake_run):
    packages.install_base_packages(installer, WORKER)
    assert fake_run.commands[0] == "apt-get update"
    assert fake_run.calls[1][:3] == ["apt-get", "install", "-y"]
    assert {"curl", "gnupg", "jq", "ca-certificates"} <= set(fake_run.calls[1])
    assert fake_run.envs[1]["DEBIAN_FRONTEND"] == "noninteractive"


def test_install_containerd(installer, fake_run):
    packages.install_containerd(installer, WORKER)
    assert fake_run.commands == ["apt-get update", "apt-get install -y containerd"]


def test_install_kubernetes_packages(installer, host_root, fake_run, network):
    packages.install_kubernetes_packages(installer, WORKER)

    assert network["get"] == ["https://pkgs.k8s.io/core:/stable:/v1.29/deb/Release.key"]
    gpg = fake_run.calls[0]
    assert gpg[:4] == ["gpg", "--batch", "--yes", "--dearmor"]
    assert gpg[-1] == str(host_root / "etc/apt/keyrings/kubernetes.gpg")
    assert fake_run.inputs[0].startswith(b"-----BEGIN PGP")
    assert (host_root / "etc/apt/keyrings").is_dir()

    assert (host_root / "etc/apt/sources.list.d/kubernetes.list").read_text() == (
        "deb [signed-by=/etc/apt/keyrings/kubernetes.gpg] "
        "https://pkgs.k8s.io/core:/stable:/v1.29/deb/ /\n"
    )
    assert fake_run.commands[1:] == [
        "apt-get update",
        "apt-get install -y kubelet kubeadm kubectl",
        "apt-mark hold kubelet kubeadm kubectl",
    ]


def test_install_kubernetes_packages_key_download_failure(installer, fake_run, monkeypatch):
    def broken_get(url, timeout=None):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(packages.requests, "get", broken_get)
    with pytest.raises(InstallerError):
        packages.install_kubernetes_packages(installer, WORKER)
    assert fake_run.calls == []


def test_install_kubernetes_packages_failure_raises(installer, fake_run):
    fake_run.fail("apt-get", "install", returncode=100, stderr="E: Unable to locate package kubelet")
    with pytest.raises(CommandError) as exc:
        packages.install_kubernetes_packages(installer, WORKER)
    assert exc.value.exit_code == 100
    assert "Unable to locate package" in exc.value.output
    assert not fake_run.ran("apt-mark")


def test_configure_containerd(installer, host_root, fake_run):
    runtime.configure_containerd(installer, WORKER)

    config = (host_root / "etc/containerd/config.toml").read_text()
    assert "SystemdCgroup = true" in config
    assert "disabled_plugins" not in config

    override = (host_root / "etc/systemd/system/containerd.service.d/override.conf").read_text()
    assert "ExecStart=\nExecStart=/usr/bin/containerd --config /etc/containerd/config.toml" in override

    assert fake_run.commands == [
        "containerd config default",
        "systemctl daemon-reexec",
        "systemctl daemon-reload",
        "systemctl restart containerd",
    ]


def test_configure_crictl(installer, host_root):
    runtime.configure_crictl(installer, WORKER)
    assert (host_root / "etc/crictl.yaml").read_text() == (
        "runtime-endpoint: unix:///run/containerd/containerd.sock\n"
    )


def test_configure_kubelet(installer, host_root):
    service.configure_kubelet(installer, WORKER)
    assert (host_root / "etc/default/kubelet").read_text() == (
        'KUBELET_EXTRA_ARGS="--container-runtime-endpoint=unix:///run/containerd/containerd.sock"\n'
    )


def test_start_services_order(installer, fake_run):
    service.start_services(installer, WORKER)
    assert fake_run.commands == [
        "systemctl enable containerd",
        "systemctl restart containerd",
        "systemctl enable kubelet",
        "systemctl restart kubelet",
    ]


def test_init_control_plane(installer, fake_run):
    control_plane.init_control_plane(installer, SINGLE)
    assert fake_run.calls == [[
        "kubeadm", "init",
        "--cri-socket=unix:///run/containerd/containerd.sock",
        "--pod-network-cidr=192.168.0.0/16",
    ]]


def test_configure_kubeconfig(installer, host_root):
    user = resolve_invoking_user()
    path = control_plane.configure_kubeconfig(installer, SINGLE)

    assert path == str(user.home / ".kube" / "config")
    target = installer.path(user.home / ".kube" / "config")
    assert target.read_text() == "apiVersion: v1\nkind: Config\n"
    assert oct(target.stat().st_mode & 0o777) == oct(0o600)
    assert target.stat().st_uid == user.uid


def test_configure_kubeconfig_without_admin_conf(installer, host_root):
    (host_root / "etc/kubernetes/admin.conf").unlink()
    with pytest.raises(InstallerError):
        control_plane.configure_kubeconfig(installer, SINGLE)


def test_install_cni(installer, host_root, fake_run):
    control_plane.install_cni(installer, SINGLE)
    assert fake_run.calls == [[
        "kubectl", "--kubeconfig", str(host_root / "etc/kubernetes/admin.conf"),
        "apply", "-f",
        "https://raw.githubusercontent.com/projectcalico/calico/v3.27.0/manifests/calico.yaml",
    ]]


def test_remove_control_plane_taint(installer, host_root, network):
    control_plane.remove_control_plane_taint(installer, SINGLE)
    assert network["kubeconfig"] == [str(host_root / "etc/kubernetes/admin.conf")]
    assert network["taint"] == [("node-role.kubernetes.io/control-plane", "NoSchedule")]


def test_remove_control_plane_taint_tolerates_api_failure(installer, monkeypatch):
    def broken(key, effect="NoSchedule", api=None):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(control_plane, "remove_node_taint", broken)
    control_plane.remove_control_plane_taint(installer, SINGLE)


def test_create_join_command_never_expires(installer, fake_run):
    join = control_plane.create_join_command(installer, SINGLE)
    assert join.startswith("kubeadm join 10.0.0.10:6443")
    assert fake_run.calls == [["kubeadm", "token", "create", "--print-join-command", "--ttl", "0"]]


def test_missing_binary_is_a_command_error(installer, monkeypatch):
    def not_found(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    monkeypatch.setattr("subprocess.run", not_found)
    with pytest.raises(CommandError) as exc:
        installer.run(["kubeadm", "version"])
    assert exc.value.exit_code == 127


def test_dry_run_changes_nothing(installer_config, host_root, fake_run, network):
    installer = NodeInstaller(installer_config, dry_run=True)

    runtime.configure_containerd(installer, WORKER)
    packages.install_kubernetes_packages(installer, WORKER)
    control_plane.configure_kubeconfig(installer, SINGLE)
    control_plane.remove_control_plane_taint(installer, SINGLE)

    assert fake_run.calls == []
    assert network["get"] == []
    assert network["taint"] == []
    assert not (host_root / "etc/containerd").exists()
    assert not (host_root / "etc/apt").exists()
    assert sorted(os.listdir(host_root / "etc")) == ["fstab", "kubernetes", "os-release"]
