"""Installation pipeline.

The installation is an ordered list of steps shared by every role, followed
by the control-plane steps when the host is a control-plane or single-node
host. Steps run in order; the first failure stops the run.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..models import PipelineResult, RunConfig, StepResult, StepStatus
from . import control_plane, host, packages, preflight, runtime, service
from .core import InstallerError, NodeInstaller

logger = logging.getLogger("kubeprep.installer.pipeline")

StepAction = Callable[[NodeInstaller, RunConfig], Optional[str]]


@dataclass(frozen=True)
class Step:
    """A named installation step."""
    name: str
    description: str
    action: StepAction


COMMON_STEPS = (
    Step('check_distribution', '🔍 Checking Linux distribution', preflight.check_distribution),
    Step('disable_swap', '💤 Disabling swap', host.disable_swap),
    Step('configure_kernel', '⚙️  Configuring kernel modules and sysctl', host.configure_kernel),
    Step('install_base_packages', '📦 Installing base packages', packages.install_base_packages),
    Step('install_containerd', '📦 Installing containerd', packages.install_containerd),
    Step('configure_containerd', '⚙️  Configuring containerd', runtime.configure_containerd),
    Step('configure_crictl', '⚙️  Configuring crictl', runtime.configure_crictl),
    Step('install_kubernetes_packages', '📦 Installing Kubernetes packages', packages.install_kubernetes_packages),
    Step('configure_kubelet', '⚙️  Configuring kubelet', service.configure_kubelet),
    Step('start_services', '🔄 Starting containerd and kubelet', service.start_services),
)

CONTROL_PLANE_STEPS = (
    Step('init_control_plane', '🚀 Initializing control plane', control_plane.init_control_plane),
    Step('configure_kubeconfig', '🔑 Configuring kubeconfig', control_plane.configure_kubeconfig),
    Step('install_cni', '🌐 Installing Calico CNI', control_plane.install_cni),
)

SINGLE_NODE_STEPS = (
    Step('remove_control_plane_taint', '🔓 Removing control-plane taint', control_plane.remove_control_plane_taint),
)

JOIN_STEPS = (
    Step('create_join_command', '🎫 Creating join command', control_plane.create_join_command),
)


def build_pipeline(run_config: RunConfig) -> List[Step]:
    """Return the steps to run for the configured role."""
    steps = list(COMMON_STEPS)
    if run_config.control_node:
        steps.extend(CONTROL_PLANE_STEPS)
        if run_config.single_node:
            steps.extend(SINGLE_NODE_STEPS)
        steps.extend(JOIN_STEPS)
    return steps


def run_pipeline(
    installer: NodeInstaller,
    run_config: RunConfig,
    steps: Optional[Sequence[Step]] = None,
) -> PipelineResult:
    """Run the steps in order, stopping at the first failure.

    Args:
        installer: NodeInstaller used by every step
        run_config: Options for this run
        steps: Steps to run (default: build_pipeline(run_config))

    Returns:
        PipelineResult: One StepResult per executed step
    """
    if steps is None:
        steps = build_pipeline(run_config)

    result = PipelineResult(role=run_config.role)
    logger.info(f"Provisioning {run_config.role.value} node ({len(steps)} steps)")

    for step in steps:
        logger.info(step.description)
        try:
            output = step.action(installer, run_config)
        except InstallerError as e:
            logger.error(f"❌ Step {step.name} failed: {e}")
            result.add(StepResult(
                name=step.name,
                status=StepStatus.FAILED,
                output=e.output,
                error=str(e),
                command=e.command,
                exit_code=e.exit_code,
            ))
            break
        result.add(StepResult(name=step.name, status=StepStatus.SUCCEEDED, output=output))

    return result
