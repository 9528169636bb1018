"""Control-plane bootstrap.

These steps only run on control-plane and single-node hosts: kubeadm init,
the user's kubeconfig, the Calico CNI, the optional control-plane taint
removal and the join command for workers.
"""

import logging
import os
import shutil

from kubeprep.utils.kube import load_kubeconfig, remove_node_taint

from ..models import RunConfig
from ..utils import resolve_invoking_user
from .core import InstallerError, NodeInstaller

logger = logging.getLogger("kubeprep.installer.control_plane")

ADMIN_KUBECONFIG = '/etc/kubernetes/admin.conf'
CONTROL_PLANE_TAINT = 'node-role.kubernetes.io/control-plane'


def init_control_plane(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Run kubeadm init.

    The pod network CIDR has to match the CNI installed afterwards.
    """
    config = installer.config
    logger.info(f"🚀 Initializing control plane (pod network {config.pod_network_cidr})")
    installer.run([
        'kubeadm', 'init',
        f'--cri-socket={config.cri_socket}',
        f'--pod-network-cidr={config.pod_network_cidr}',
    ])


def configure_kubeconfig(installer: NodeInstaller, run_config: RunConfig) -> str:
    """Copy the admin kubeconfig into the invoking user's home directory.

    The copy is owned by the user who ran the installer (the sudo caller),
    not by root.

    Returns:
        str: Path of the written kubeconfig
    """
    user = resolve_invoking_user()
    kube_dir = user.home / '.kube'
    kubeconfig = kube_dir / 'config'

    if installer.dry_run:
        logger.info(f"[DRY RUN] Would copy {ADMIN_KUBECONFIG} to {kubeconfig} for {user.name}")
        return str(kubeconfig)

    source = installer.path(ADMIN_KUBECONFIG)
    target_dir = installer.path(kube_dir)
    target = target_dir / 'config'
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        os.chmod(target, 0o600)
        os.chown(target_dir, user.uid, user.gid)
        os.chown(target, user.uid, user.gid)
    except OSError as e:
        raise InstallerError(f"Failed to install kubeconfig for {user.name}: {e}") from e

    logger.info(f"🔑 Kubeconfig written to {kubeconfig} (owner: {user.name})")
    return str(kubeconfig)


def install_cni(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Apply the Calico manifest."""
    url = installer.config.cni_manifest_url
    logger.info(f"🌐 Installing Calico CNI {installer.config.cni_version}")
    installer.run(['kubectl', '--kubeconfig', installer.path(ADMIN_KUBECONFIG), 'apply', '-f', url])


def remove_control_plane_taint(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Allow workloads on the control plane of a single-node cluster.

    Best effort: a missing taint or an API failure only logs a warning.
    """
    if installer.dry_run:
        logger.info(f"[DRY RUN] Would remove {CONTROL_PLANE_TAINT}:NoSchedule from all nodes")
        return

    try:
        load_kubeconfig(str(installer.path(ADMIN_KUBECONFIG)))
        patched = remove_node_taint(CONTROL_PLANE_TAINT, 'NoSchedule')
    except Exception as e:
        logger.warning(f"⚠️  Could not remove control-plane taint: {e}")
        return

    if patched:
        logger.info(f"✅ Removed control-plane taint from {', '.join(patched)}")
    else:
        logger.info("No node carries the control-plane taint")


def create_join_command(installer: NodeInstaller, run_config: RunConfig) -> str:
    """Create a non-expiring bootstrap token and return the worker join command."""
    result = installer.run(['kubeadm', 'token', 'create', '--print-join-command', '--ttl', '0'])
    return result.stdout.strip()
