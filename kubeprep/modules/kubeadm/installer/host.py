"""Host preparation: swap, kernel modules and sysctl settings."""

import logging

from ..models import RunConfig
from ..utils import comment_swap_entries
from .configuration import render_template
from .core import NodeInstaller

logger = logging.getLogger("kubeprep.installer.host")

FSTAB = '/etc/fstab'
MODULES_LOAD_CONF = '/etc/modules-load.d/k8s.conf'
SYSCTL_CONF = '/etc/sysctl.d/99-kubernetes.conf'

KERNEL_MODULES = ('overlay', 'br_netfilter')
SYSCTL_PARAMS = {
    'net.bridge.bridge-nf-call-iptables': 1,
    'net.bridge.bridge-nf-call-ip6tables': 1,
    'net.ipv4.ip_forward': 1,
}


def disable_swap(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Turn swap off now and keep it off across reboots."""
    result = installer.run(['swapoff', '-a'], check=False)
    if not result.ok:
        logger.warning(f"⚠️  swapoff failed with exit code {result.returncode}, continuing")

    fstab = installer.path(FSTAB)
    if not fstab.exists():
        logger.warning(f"⚠️  {FSTAB} not found, no persistent swap entries to disable")
        return

    content, commented = comment_swap_entries(
        installer.read_file(FSTAB, errors='surrogateescape')
    )
    if commented:
        installer.write_file(FSTAB, content, errors='surrogateescape')
    logger.debug(f"Commented out {commented} swap entries in {FSTAB}")


def configure_kernel(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Load the container networking modules and apply the sysctl settings."""
    installer.write_file(MODULES_LOAD_CONF, render_template('modules-load.conf.j2', modules=KERNEL_MODULES))
    installer.write_file(SYSCTL_CONF, render_template('sysctl.conf.j2', params=SYSCTL_PARAMS))

    for module in KERNEL_MODULES:
        installer.run(['modprobe', module])
    installer.run(['sysctl', '--system'])
