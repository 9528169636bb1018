"""Package installation: base tools, containerd and the pinned Kubernetes packages."""

import logging

import requests

from ..models import CommandResult, RunConfig
from .configuration import render_template
from .core import InstallerError, NodeInstaller

logger = logging.getLogger("kubeprep.installer.packages")

KEYRING = '/etc/apt/keyrings/kubernetes.gpg'
SOURCE_LIST = '/etc/apt/sources.list.d/kubernetes.list'

# Later steps rely on these tools (curl, gpg, jq) being present
BASE_PACKAGES = (
    'apt-transport-https',
    'ca-certificates',
    'curl',
    'gnupg',
    'lsb-release',
    'software-properties-common',
    'jq',
)
CONTAINER_RUNTIME_PACKAGES = ('containerd',)
KUBERNETES_PACKAGES = ('kubelet', 'kubeadm', 'kubectl')

APT_ENV = {'DEBIAN_FRONTEND': 'noninteractive'}


def apt_get(installer: NodeInstaller, *args: str) -> CommandResult:
    return installer.run(['apt-get', *args], env=APT_ENV)


def install_base_packages(installer: NodeInstaller, run_config: RunConfig) -> None:
    apt_get(installer, 'update')
    apt_get(installer, 'install', '-y', *BASE_PACKAGES)


def install_containerd(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Install containerd from the distribution's own repository."""
    apt_get(installer, 'update')
    apt_get(installer, 'install', '-y', *CONTAINER_RUNTIME_PACKAGES)


def fetch_signing_key(installer: NodeInstaller) -> bytes:
    """Download the armored signing key of the Kubernetes package repository.

    Raises:
        InstallerError: If the key cannot be downloaded
    """
    url = installer.config.signing_key_url
    if installer.dry_run:
        logger.info(f"[DRY RUN] Would download {url}")
        return b''

    logger.debug(f"Downloading signing key from {url}")
    try:
        response = requests.get(url, timeout=installer.config.http_timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise InstallerError(f"Failed to download signing key from {url}: {e}") from e
    return response.content


def install_kubernetes_packages(installer: NodeInstaller, run_config: RunConfig) -> None:
    """Add the pkgs.k8s.io repository, install the node packages and hold them.

    The packages are held so unattended upgrades never move a running node
    to another minor release.
    """
    config = installer.config
    logger.info(f"📦 Using Kubernetes {config.kubernetes_version} package repository")

    key = fetch_signing_key(installer)
    installer.ensure_dir('/etc/apt/keyrings')
    installer.run(
        ['gpg', '--batch', '--yes', '--dearmor', '-o', installer.path(KEYRING)],
        input_data=key,
    )
    installer.write_file(
        SOURCE_LIST,
        render_template('kubernetes.list.j2', keyring=KEYRING, repo_url=config.package_repo_url),
    )

    apt_get(installer, 'update')
    apt_get(installer, 'install', '-y', *KUBERNETES_PACKAGES)
    installer.run(['apt-mark', 'hold', *KUBERNETES_PACKAGES])
