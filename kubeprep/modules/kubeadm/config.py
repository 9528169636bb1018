"""Installer configuration management.

This module handles configuration loading from multiple sources with the following precedence:
1. Explicitly passed overrides (command-line options)
2. Environment variables (KUBEPREP_<FIELD>)
3. Configuration files
4. Default values

The Kubernetes release line and the Calico version are independent settings.
The pod network CIDR must match what the CNI add-on expects; the default
matches Calico's manifest.
"""
import ipaddress
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from kubeprep.config import Config

logger = logging.getLogger("kubeprep.kubeadm.config")

# Default configuration paths
DEFAULT_CONFIG_PATHS = [
    Path("/etc/kubeprep/config.yaml"),
    Path("~/.config/kubeprep/config.yaml").expanduser(),
    Path("kubeprep.yaml").absolute(),
]


class InstallerConfig(BaseModel):
    """Settings for provisioning a kubeadm node."""
    model_config = ConfigDict(extra="ignore")

    kubernetes_version: str = Field(
        default="1.29",
        description="Kubernetes minor release line of the apt repository (e.g. 1.29)"
    )
    cni_version: str = Field(
        default="v3.27.0",
        description="Calico release tag the CNI manifest is fetched from"
    )
    pod_network_cidr: str = Field(
        default="192.168.0.0/16",
        description="Pod network range passed to kubeadm init"
    )
    cri_socket: str = Field(
        default="unix:///run/containerd/containerd.sock",
        description="containerd CRI socket used by kubelet, kubeadm and crictl"
    )
    supported_distribution: str = Field(
        default="ubuntu",
        description="Required ID from /etc/os-release"
    )
    supported_version: str = Field(
        default="24.04",
        description="Required VERSION_ID from /etc/os-release"
    )
    http_timeout: int = Field(
        default=30,
        description="Timeout in seconds for downloading the package signing key"
    )
    host_root: Path = Field(
        default=Path("/"),
        description="Directory every host path is resolved under"
    )

    @field_validator('kubernetes_version')
    @classmethod
    def check_kubernetes_version(cls, v: str) -> str:
        """Accept a minor version such as 1.29 (a leading v is dropped)."""
        v = v.strip().lstrip('v')
        if not re.match(r'^\d+\.\d+$', v):
            raise ValueError(f"Invalid Kubernetes version format: {v} (expected format: 1.29, 1.30, ...)")
        return v

    @field_validator('cni_version')
    @classmethod
    def check_cni_version(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("CNI version cannot be empty")
        return v if v.startswith('v') else f"v{v}"

    @field_validator('pod_network_cidr')
    @classmethod
    def check_pod_network_cidr(cls, v: str) -> str:
        try:
            return str(ipaddress.ip_network(v.strip(), strict=True))
        except ValueError as e:
            raise ValueError(f"Invalid pod network CIDR {v}: {e}") from e

    @field_validator('cri_socket')
    @classmethod
    def check_cri_socket(cls, v: str) -> str:
        if not v.startswith('unix://'):
            raise ValueError(f"CRI socket must be a unix:// endpoint, got {v}")
        return v

    @property
    def package_repo_url(self) -> str:
        return f"https://pkgs.k8s.io/core:/stable:/v{self.kubernetes_version}/deb/"

    @property
    def signing_key_url(self) -> str:
        return f"{self.package_repo_url}Release.key"

    @property
    def cni_manifest_url(self) -> str:
        return (
            "https://raw.githubusercontent.com/projectcalico/calico/"
            f"{self.cni_version}/manifests/calico.yaml"
        )

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> 'InstallerConfig':
        """Load configuration from file, environment variables and overrides.

        Args:
            config_path: Explicit configuration file; must exist if given
            overrides: Values that win over every other source (None values are ignored)

        Returns:
            InstallerConfig: The merged configuration

        Raises:
            FileNotFoundError: If an explicit configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
            ValueError: If the file is not a mapping or a value fails validation
        """
        config_data: Dict[str, Any] = {}

        explicit = config_path or Config.CONFIG_PATH
        if explicit:
            path = Path(explicit).expanduser().absolute()
            if not path.exists():
                raise FileNotFoundError(f"Configuration file not found: {path}")
            config_data = cls._load_config_file(path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        config_data.update(cls._load_env())
        if overrides:
            config_data.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**config_data)

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        logger.debug(f"Loading configuration from {path}")
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration in {path}: expected a mapping, got {type(data).__name__}")
        return data

    @classmethod
    def _load_env(cls) -> Dict[str, str]:
        """Collect KUBEPREP_<FIELD> environment variables."""
        env = {}
        for name in cls.model_fields:
            value = os.getenv(f"{Config.ENV_PREFIX}{name.upper()}")
            if value:
                env[name] = value
        return env
