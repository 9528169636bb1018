"""Helpers shared across kubeprep modules."""
