"""File-based node inventory.

Reads a node list in the shape produced by ``kubectl get nodes -o yaml`` (or
``-o json``), which is handy in labs and for dry runs without cluster access.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from podroutes.exceptions import InventoryError
from podroutes.routes import NodeAddress, NodeRecord

LOG = logging.getLogger(__name__)


def node_from_dict(entry: Dict[str, Any]) -> NodeRecord:
    metadata = entry.get("metadata") or {}
    spec = entry.get("spec") or {}
    status = entry.get("status") or {}

    name = metadata.get("name")
    if not name:
        raise ValueError("node entry missing 'metadata.name'")

    addresses = tuple(
        NodeAddress(type=str(a.get("type", "")), address=str(a.get("address") or ""))
        for a in status.get("addresses") or []
    )
    return NodeRecord(name=str(name), pod_cidr=spec.get("podCIDR"), addresses=addresses)


class FileNodeInventory:
    """Load node records from a YAML/JSON file on every call."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def list_nodes(self) -> List[NodeRecord]:
        try:
            payload = yaml.safe_load(self._path.read_text())
        except OSError as exc:
            raise InventoryError(f"cannot read nodes file {self._path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise InventoryError(f"failed to parse nodes file {self._path}: {exc}") from exc

        if isinstance(payload, dict):
            items = payload.get("items")
        else:
            items = payload
        if not isinstance(items, list):
            raise InventoryError(f"nodes file {self._path} must hold a list or an 'items' list")

        try:
            nodes = [node_from_dict(item) for item in items]
        except (AttributeError, ValueError) as exc:
            raise InventoryError(f"invalid nodes file {self._path}: {exc}") from exc

        LOG.debug("Loaded %d nodes from %s", len(nodes), self._path)
        return nodes
