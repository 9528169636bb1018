"""kubeprep - turn a fresh Ubuntu host into a kubeadm Kubernetes node."""

__version__ = "0.1.0"
