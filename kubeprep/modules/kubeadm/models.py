"""Data models for the kubeadm node installer."""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class NodeRole(str, Enum):
    """Role the host takes in the cluster."""
    WORKER = 'worker'
    CONTROL_PLANE = 'control-plane'
    SINGLE_NODE = 'single-node'


class StepStatus(str, Enum):
    """Outcome of a single installation step."""
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


@dataclass(frozen=True)
class RunConfig:
    """Options for one installer run, fixed before the first step."""
    control_node: bool = False
    single_node: bool = False
    verbose: bool = False
    dry_run: bool = False

    def __post_init__(self) -> None:
        # A single-node cluster is always its own control plane
        if self.single_node and not self.control_node:
            object.__setattr__(self, 'control_node', True)

    @classmethod
    def from_flags(
        cls,
        control: bool = False,
        single: bool = False,
        verbose: bool = False,
        dry_run: bool = False,
    ) -> 'RunConfig':
        """Build the run configuration from command-line flags."""
        return cls(
            control_node=control or single,
            single_node=single,
            verbose=verbose,
            dry_run=dry_run,
        )

    @property
    def role(self) -> NodeRole:
        if self.single_node:
            return NodeRole.SINGLE_NODE
        if self.control_node:
            return NodeRole.CONTROL_PLANE
        return NodeRole.WORKER


@dataclass
class CommandResult:
    """Result of an external command."""
    argv: List[str]
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def command(self) -> str:
        return shlex.join(self.argv)

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class StepResult:
    """Result of a pipeline step.

    On failure ``error`` holds the message, ``command`` the failing command
    line (if an external command failed), ``output`` its captured output and
    ``exit_code`` the status the process should exit with.
    """
    name: str
    status: StepStatus
    output: Optional[str] = None
    error: Optional[str] = None
    command: Optional[str] = None
    exit_code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED


@dataclass
class PipelineResult:
    """Tracks the steps executed for one run."""
    role: NodeRole
    steps: List[StepResult] = field(default_factory=list)

    def add(self, step: StepResult) -> None:
        self.steps.append(step)

    @property
    def succeeded(self) -> bool:
        return all(step.succeeded for step in self.steps)

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((step for step in self.steps if not step.succeeded), None)

    @property
    def exit_code(self) -> int:
        failed = self.failed_step
        return failed.exit_code if failed else 0

    @property
    def executed(self) -> List[str]:
        """Names of the steps that ran, in order."""
        return [step.name for step in self.steps]

    def output_of(self, name: str) -> Optional[str]:
        for step in self.steps:
            if step.name == name:
                return step.output
        return None

    @property
    def join_command(self) -> Optional[str]:
        return self.output_of('create_join_command')
