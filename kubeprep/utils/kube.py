import os
from pathlib import Path
from typing import List, Optional

from kubernetes import client, config


def load_kubeconfig(path: str) -> str:
    """
    Load the kubeconfig at the given path for the kubernetes client.
    Returns the actual path used to load the kubeconfig.
    """
    resolved = Path(os.path.expanduser(path)).resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"❌ Kubeconfig not found: {resolved}")
    config.load_kube_config(config_file=str(resolved))
    return str(resolved)


def remove_node_taint(
    key: str,
    effect: Optional[str] = "NoSchedule",
    api: Optional[client.CoreV1Api] = None,
) -> List[str]:
    """
    Remove a taint from every node that carries it.
    Nodes without the taint are left untouched. Returns the names of the
    nodes that were patched.
    """
    api = api or client.CoreV1Api()
    patched = []
    for node in api.list_node().items:
        taints = node.spec.taints or []
        remaining = [t for t in taints if not (t.key == key and (effect is None or t.effect == effect))]
        if len(remaining) == len(taints):
            continue

        # null drops the field when no taints are left
        body = {"spec": {"taints": [_taint_dict(t) for t in remaining] or None}}
        api.patch_node(node.metadata.name, body)
        patched.append(node.metadata.name)
    return patched


def _taint_dict(taint) -> dict:
    data = {"key": taint.key, "effect": taint.effect}
    if taint.value is not None:
        data["value"] = taint.value
    return data
