"""Node inventory readers used by the agent."""

from .file import FileNodeInventory  # noqa: F401
from .kube import KubernetesNodeInventory  # noqa: F401

__all__ = ["FileNodeInventory", "KubernetesNodeInventory"]
