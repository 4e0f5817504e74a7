"""Enactor programming the host kernel routing table over netlink."""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Callable, Sequence

import pyroute2

from ..routes import Route
from .base import EnactOutcome, RouteEnactor

LOG = logging.getLogger(__name__)

# From /usr/include/linux/rtnetlink.h
RT_TABLE_MAIN = 254
RTPROT_STATIC = 4


class DirectKernelEnactor(RouteEnactor):
    """Install routes with ``ip route replace`` semantics, remove with ``del``.

    Every route is handled on its own: a malformed destination or a netlink
    error is logged and the remaining routes are still processed.  There is
    no rollback of routes that were installed before a failure.
    """

    name = "kernel"
    withdraws_stale = True

    def __init__(
        self,
        *,
        table: int = RT_TABLE_MAIN,
        proto: int = RTPROT_STATIC,
        iproute_factory: Callable[[], pyroute2.IPRoute] = pyroute2.IPRoute,
    ) -> None:
        self._table = table
        self._proto = proto
        self._iproute_factory = iproute_factory

    def apply(self, routes: Sequence[Route]) -> EnactOutcome:
        return self._enact("replace", routes)

    def retract(self, routes: Sequence[Route]) -> EnactOutcome:
        return self._enact("del", routes)

    def _enact(self, command: str, routes: Sequence[Route]) -> EnactOutcome:
        outcome = EnactOutcome(attempted=len(routes))
        if not routes:
            return outcome

        try:
            ipr = self._iproute_factory()
        except OSError as exc:
            LOG.error("Cannot open netlink socket, %d routes not enacted: %s", len(routes), exc)
            outcome.failed.extend(routes)
            return outcome

        with ipr:
            for n, route in enumerate(routes):
                try:
                    dst = ipaddress.ip_network(route.destination, strict=False)
                    gateway = ipaddress.ip_address(route.nexthop)
                except ValueError as exc:
                    LOG.error("Skipping route #%d (%s): %s", n, route.label, exc)
                    outcome.skipped.append(route)
                    continue

                family = socket.AF_INET6 if dst.version == 6 else socket.AF_INET
                try:
                    ipr.route(
                        command,
                        dst=str(dst),
                        gateway=str(gateway),
                        family=family,
                        table=self._table,
                        proto=self._proto,
                    )
                except (pyroute2.NetlinkError, OSError) as exc:
                    LOG.error(
                        "Route %s %s via %s (%s) failed: %s",
                        command,
                        dst,
                        gateway,
                        route.label,
                        exc,
                    )
                    outcome.failed.append(route)
                    continue

                LOG.info("Route %s %s via %s (%s)", command, dst, gateway, route.label)

        return outcome
