"""Pod-network route reconciliation engine.

This package keeps a host's routing state in line with the pod subnets
announced by the nodes of a cluster.  Each reconciliation tick:

* reads the node inventory (name, pod subnet, addresses);
* derives one :class:`~podroutes.routes.Route` per pod subnet and internal
  address;
* compares the result with the last applied set; and
* hands changed sets to a pluggable enactor which either renders a routing
  daemon configuration and reloads it, or programs the kernel routing table.

The runnable agent (config loading, inventory readers, CLI) lives in the
sibling ``podroutes_agent`` package.
"""

from .reconciler import ReconciliationLoop  # noqa: F401
from .routes import NodeAddress, NodeRecord, Route, derive_routes, routes_changed  # noqa: F401

__all__ = [
    "NodeAddress",
    "NodeRecord",
    "ReconciliationLoop",
    "Route",
    "derive_routes",
    "routes_changed",
]
