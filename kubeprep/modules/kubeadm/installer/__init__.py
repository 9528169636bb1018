"""kubeadm node installation.

This package provisions the local host as a kubeadm node. It's organized
into several focused modules:

- core: NodeInstaller (commands and host files) and error types
- configuration: Template rendering and containerd config patching
- preflight: Distribution check
- host: Swap, kernel modules and sysctl
- packages: apt packages and the Kubernetes repository
- runtime: containerd and crictl configuration
- service: systemd services and kubelet configuration
- control_plane: kubeadm init, kubeconfig, CNI, taint and join command
- pipeline: Ordered steps and the runner
- scratch: Per-run scratch directory
"""

from .core import NodeInstaller, InstallerError, CommandError
from .configuration import ConfigurationError, render_template, patch_containerd_config
from .preflight import UnsupportedDistributionError, check_distribution
from .pipeline import Step, build_pipeline, run_pipeline
from .scratch import ScratchDir

__all__ = [
    'NodeInstaller',
    'InstallerError',
    'CommandError',
    'ConfigurationError',
    'render_template',
    'patch_containerd_config',
    'UnsupportedDistributionError',
    'check_distribution',
    'Step',
    'build_pipeline',
    'run_pipeline',
    'ScratchDir',
]
