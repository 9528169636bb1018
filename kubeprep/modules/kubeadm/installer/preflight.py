"""Preflight checks run before anything on the host is changed."""

import logging
from typing import Dict

from ..models import RunConfig
from ..utils import parse_os_release
from .core import InstallerError, NodeInstaller

logger = logging.getLogger("kubeprep.installer.preflight")

OS_RELEASE = '/etc/os-release'


class UnsupportedDistributionError(InstallerError):
    """Raised when the host is not the supported Linux distribution."""
    pass


def read_os_release(installer: NodeInstaller) -> Dict[str, str]:
    """Read and parse the host's os-release file.

    Raises:
        UnsupportedDistributionError: If the file cannot be read
    """
    try:
        return parse_os_release(installer.read_file(OS_RELEASE))
    except InstallerError as e:
        raise UnsupportedDistributionError(f"Unable to detect Linux distribution: {e}") from e


def check_distribution(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Abort unless the host runs the supported distribution release."""
    config = installer.config
    os_info = read_os_release(installer)
    distro = os_info.get('ID', '')
    version = os_info.get('VERSION_ID', '')
    logger.debug(f"Detected distribution {distro} {version}")

    if distro != config.supported_distribution or version != config.supported_version:
        name = os_info.get('PRETTY_NAME') or f"{distro} {version}".strip() or 'unknown'
        raise UnsupportedDistributionError(
            f"This installer supports ONLY {config.supported_distribution} "
            f"{config.supported_version} (found: {name})"
        )
    logger.info(f"✅ Running on {os_info.get('PRETTY_NAME', f'{distro} {version}')}")
