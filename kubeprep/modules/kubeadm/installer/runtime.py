"""Container runtime configuration (containerd and crictl)."""

import logging

from ..models import RunConfig
from .configuration import patch_containerd_config, render_template
from .core import NodeInstaller
from .service import reload_units, restart_service

logger = logging.getLogger("kubeprep.installer.runtime")

CONTAINERD_BIN = '/usr/bin/containerd'
CONTAINERD_CONFIG = '/etc/containerd/config.toml'
CONTAINERD_OVERRIDE = '/etc/systemd/system/containerd.service.d/override.conf'
CRICTL_CONFIG = '/etc/crictl.yaml'


def configure_containerd(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Write containerd's config with the systemd cgroup driver and restart it.

    The systemd override pins containerd to the config written here.
    """
    default_config = installer.run(['containerd', 'config', 'default']).stdout
    installer.write_file(CONTAINERD_CONFIG, patch_containerd_config(default_config))

    installer.write_file(
        CONTAINERD_OVERRIDE,
        render_template(
            'containerd-override.conf.j2',
            containerd_bin=CONTAINERD_BIN,
            config_path=CONTAINERD_CONFIG,
        ),
    )

    reload_units(installer)
    restart_service(installer, 'containerd')


def configure_crictl(installer: NodeInstaller, run_config: RunConfig) -> None:
    installer.write_file(
        CRICTL_CONFIG,
        render_template('crictl.yaml.j2', cri_socket=installer.config.cri_socket),
    )
