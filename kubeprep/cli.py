import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml

from kubeprep.logging import log_session
from kubeprep.modules.kubeadm.config import InstallerConfig
from kubeprep.modules.kubeadm.installer import NodeInstaller, ScratchDir, run_pipeline
from kubeprep.modules.kubeadm.models import RunConfig

logger = logging.getLogger("kubeprep.cli")

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "-?", "--help"],
    # Unknown options and stray arguments are ignored
    "ignore_unknown_options": True,
    "allow_extra_args": True,
}

app = typer.Typer(add_completion=False, context_settings=CONTEXT_SETTINGS)


@app.command(context_settings=CONTEXT_SETTINGS)
def main(
    ctx: typer.Context,
    control_node: bool = typer.Option(False, "-c", help="Set up a control-plane node"),
    single_node: bool = typer.Option(False, "-s", help="Set up a single-node cluster (control plane that also runs workloads)"),
    verbose: bool = typer.Option(False, "-v", help="Enable verbose output"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without changing the host"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Installer configuration file (YAML)"),
    kubernetes_version: Optional[str] = typer.Option(None, "--k8s-version", help="Kubernetes minor release line, e.g. 1.29"),
    cni_version: Optional[str] = typer.Option(None, "--cni-version", help="Calico release tag, e.g. v3.27.0"),
    pod_network_cidr: Optional[str] = typer.Option(None, "--pod-cidr", help="Pod network CIDR (must match the CNI)"),
):
    """
    Provision this Ubuntu 24.04 host as a kubeadm Kubernetes node.

    \b
    kubeprep -c   (control plane)
    kubeprep      (worker)
    kubeprep -s   (single-node)
    kubeprep -v   (verbose)
    """
    run_config = RunConfig.from_flags(
        control=control_node, single=single_node, verbose=verbose, dry_run=dry_run
    )

    with ScratchDir() as scratch, log_session(scratch.log_file, verbose=verbose):
        if ctx.args:
            logger.debug(f"Ignoring unrecognized arguments: {' '.join(ctx.args)}")

        try:
            config = InstallerConfig.load(
                config_path,
                overrides={
                    "kubernetes_version": kubernetes_version,
                    "cni_version": cni_version,
                    "pod_network_cidr": pod_network_cidr,
                },
            )
        except (OSError, yaml.YAMLError, ValueError) as e:
            typer.echo(f"❌ Invalid configuration: {e}", err=True)
            raise typer.Exit(code=1)

        installer = NodeInstaller(config, dry_run=run_config.dry_run)
        result = run_pipeline(installer, run_config)

        failed = result.failed_step
        if failed:
            typer.echo(f"❌ Error in step {failed.name}: {failed.error}", err=True)
            scratch.dump(sys.stderr)
            raise typer.Exit(code=failed.exit_code)

        if run_config.control_node:
            typer.echo("Cluster initialized successfully")
            if result.join_command:
                typer.echo(result.join_command)
        else:
            typer.echo("Worker node ready. Use join command from control plane.")
