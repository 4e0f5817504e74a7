"""Route data model, derivation from node records and change detection."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

LOG = logging.getLogger(__name__)

INTERNAL_IP = "InternalIP"


@dataclass(frozen=True)
class Route:
    """A pod subnet reachable through a node address.

    Attributes
    ----------
    destination:
        The pod subnet in CIDR notation.
    nexthop:
        The node's internal address used as gateway.
    label:
        Name of the owning node.  Only used for logging and in rendered
        configuration comments; it is not part of the route identity on the
        host.
    """

    destination: str
    nexthop: str
    label: str = ""

    def key(self) -> tuple[str, str]:
        return self.destination, self.nexthop


@dataclass(frozen=True)
class NodeAddress:
    type: str
    address: str


@dataclass(frozen=True)
class NodeRecord:
    """Subset of a cluster node needed to derive routes."""

    name: str
    pod_cidr: Optional[str] = None
    addresses: Sequence[NodeAddress] = field(default_factory=tuple)


def derive_routes(nodes: Iterable[NodeRecord]) -> List[Route]:
    """Return one route per (node, internal address) pair.

    Nodes without a pod subnet are skipped, as are addresses that are not of
    type ``InternalIP`` or are empty.  A node with several internal addresses
    yields several routes for the same destination; they are kept as-is so
    that "replace" style enactors end up with the last one.
    """

    routes: List[Route] = []
    for node in nodes:
        if not node.pod_cidr:
            LOG.debug("Node %s has no pod subnet, skipping", node.name)
            continue

        LOG.debug("Node %s, pod subnet %s", node.name, node.pod_cidr)
        for address in node.addresses:
            LOG.debug(" - address %s %s", address.address, address.type)
            if address.type != INTERNAL_IP or not address.address:
                continue

            route = Route(
                destination=node.pod_cidr,
                nexthop=address.address,
                label=node.name,
            )
            routes.append(route)
            LOG.debug("Route derived: %s", route)

    return routes


def routes_changed(
    previous: Optional[Sequence[Route]],
    current: Sequence[Route],
    *,
    ordered: bool = True,
) -> bool:
    """Tell whether ``current`` differs from ``previous``.

    ``previous`` is ``None`` until something was applied, which always counts
    as a change.  With ``ordered`` (the default) the two sequences must match
    element by element, so a reordered inventory is reported as a change.
    Otherwise routes are compared as multisets keyed by destination and
    next-hop.
    """

    if previous is None:
        return True
    if ordered:
        return list(previous) != list(current)
    return Counter(r.key() for r in previous) != Counter(r.key() for r in current)
