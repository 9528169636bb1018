"""Node service management.

This module handles systemd operations and the kubelet configuration.
"""

import logging

from ..models import RunConfig
from .configuration import render_template
from .core import NodeInstaller

logger = logging.getLogger("kubeprep.installer.service")

KUBELET_DEFAULTS = '/etc/default/kubelet'

# kubelet needs the containerd socket, so containerd always comes first
NODE_SERVICES = ('containerd', 'kubelet')


def reload_units(installer: NodeInstaller) -> None:
    """Re-execute systemd and reload unit files after an override changed."""
    installer.run(['systemctl', 'daemon-reexec'])
    installer.run(['systemctl', 'daemon-reload'])


def enable_service(installer: NodeInstaller, name: str) -> None:
    installer.run(['systemctl', 'enable', name])


def restart_service(installer: NodeInstaller, name: str) -> None:
    logger.debug(f"Restarting {name}")
    installer.run(['systemctl', 'restart', name])


def configure_kubelet(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Point kubelet at the containerd CRI socket."""
    installer.write_file(
        KUBELET_DEFAULTS,
        render_template('kubelet.env.j2', cri_socket=installer.config.cri_socket),
    )


def start_services(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Enable and restart containerd, then kubelet."""
    for name in NODE_SERVICES:
        enable_service(installer, name)
        restart_service(installer, name)
    logger.info(f"✅ Services running: {', '.join(NODE_SERVICES)}")
