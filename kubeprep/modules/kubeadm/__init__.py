"""kubeadm node provisioning for Ubuntu hosts."""

from .config import InstallerConfig
from .models import NodeRole, RunConfig, CommandResult, StepResult, StepStatus, PipelineResult

__all__ = [
    'InstallerConfig',
    'NodeRole',
    'RunConfig',
    'CommandResult',
    'StepResult',
    'StepStatus',
    'PipelineResult',
]
