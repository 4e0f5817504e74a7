"""Periodic reconciliation of the desired route set against the host.

The loop is a plain polling thread, similar to the namespace watchers of the
agent: every ``interval`` seconds it reads the node inventory, derives the
desired routes and hands them to the configured enactor when they differ from
what was applied last.
"""

from __future__ import annotations

import enum
import logging
from threading import Event, Lock, Thread
from typing import Callable, List, Optional, Protocol, Sequence

from .enactors.base import EnactOutcome, RouteEnactor
from .exceptions import EnactError
from .routes import NodeRecord, Route, derive_routes, routes_changed

LOG = logging.getLogger(__name__)


class NodeInventory(Protocol):
    def list_nodes(self) -> List[NodeRecord]:
        ...


class LoopState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DERIVING = "deriving"
    COMPARING = "comparing"
    ENACTING = "enacting"
    SKIPPING = "skipping"


class ReconciliationLoop(Thread):
    """Own the last applied route set and keep it in sync with the inventory.

    Parameters
    ----------
    inventory:
        Object exposing ``list_nodes()``.
    enactor:
        Backend used to apply and retract routes.
    interval:
        Seconds between ticks.  The first tick runs as soon as the thread
        starts.
    stop_event:
        Shared event ending the loop.
    ordered_compare:
        Compare route sets element by element (default).  When false the
        order of the inventory is ignored.
    retry_failed:
        Re-apply routes the enactor reported as failed even when the desired
        set did not change.
    """

    def __init__(
        self,
        inventory: NodeInventory,
        enactor: RouteEnactor,
        *,
        interval: float,
        stop_event: Event,
        ordered_compare: bool = True,
        retry_failed: bool = False,
        deriver: Callable[[Sequence[NodeRecord]], List[Route]] = derive_routes,
    ) -> None:
        super().__init__(daemon=True, name="PodRoutesReconciler")
        self._inventory = inventory
        self._enactor = enactor
        self._interval = interval
        self._stop_event = stop_event
        self._ordered_compare = ordered_compare
        self._retry_failed = retry_failed
        self._deriver = deriver

        self._lock = Lock()
        self._applied: Optional[List[Route]] = None
        self._failed: List[Route] = []
        # Dropped routes whose retraction failed; retried later and at teardown.
        self._stale: List[Route] = []
        self._closed = False
        self.state = LoopState.IDLE

    @property
    def applied_routes(self) -> Optional[List[Route]]:
        """Snapshot of the last applied set, ``None`` before the first enactment."""

        with self._lock:
            return None if self._applied is None else list(self._applied)

    @property
    def failed_routes(self) -> List[Route]:
        with self._lock:
            return list(self._failed)

    def run(self) -> None:
        LOG.info("Reconciliation loop started (interval=%ss, enactor=%s)",
                 self._interval, self._enactor.name)
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:  # pragma: no cover
                LOG.exception("Reconciliation tick failed")
                self.state = LoopState.IDLE
            self._stop_event.wait(self._interval)
        LOG.info("Reconciliation loop stopped")

    def tick(self) -> bool:
        """Run one reconciliation pass, return whether the enactor was called."""

        self.state = LoopState.FETCHING
        try:
            nodes = self._inventory.list_nodes()
        except Exception as exc:
            LOG.error("Failed to list nodes: %s", exc)
            self.state = LoopState.IDLE
            return False

        self.state = LoopState.DERIVING
        desired = self._deriver(nodes)
        LOG.debug("Derived %d routes from %d nodes", len(desired), len(nodes))

        self.state = LoopState.COMPARING
        with self._lock:
            changed = routes_changed(self._applied, desired, ordered=self._ordered_compare)
            if changed:
                LOG.info("Routes have changed, enacting %d routes", len(desired))
                self.state = LoopState.ENACTING
                enacted = self._enact(desired, desired)
            elif self._retry_failed and self._failed:
                LOG.info("Retrying %d failed routes", len(self._failed))
                self.state = LoopState.ENACTING
                enacted = self._enact(list(self._failed), self._applied)
            else:
                LOG.debug("Routes unchanged, nothing to do")
                self.state = LoopState.SKIPPING
                enacted = False

        self.state = LoopState.IDLE
        return enacted

    def _enact(self, routes: List[Route], applied: Optional[List[Route]]) -> bool:
        # Caller holds self._lock.
        if self._closed:
            LOG.debug("Loop closed, not enacting")
            return False

        try:
            outcome = self._enactor.apply(routes)
        except EnactError as exc:
            LOG.error("Enactment failed: %s", exc)
            output = getattr(exc, "output", "")
            if output:
                LOG.error("Command output:\n%s", output)
            return True

        previous = self._applied
        self._applied = None if applied is None else list(applied)
        self._failed = list(outcome.failed)
        self._log_outcome(outcome)
        if self._enactor.withdraws_stale:
            self._withdraw_stale(previous or [], self._applied or [])
        return True

    def _withdraw_stale(self, previous: List[Route], current: List[Route]) -> None:
        # Caller holds self._lock.  Routes sharing a destination with a
        # desired route were already replaced in place.
        wanted = {r.destination for r in current}
        stale = [r for r in [*self._stale, *previous] if r.destination not in wanted]
        stale = list(dict.fromkeys(stale))
        if not stale:
            self._stale = []
            return

        LOG.info("Withdrawing %d routes no longer desired", len(stale))
        try:
            outcome = self._enactor.retract(stale)
        except EnactError as exc:
            LOG.error("Withdrawal failed: %s", exc)
            self._stale = stale
            return
        self._stale = list(outcome.failed)
        self._log_outcome(outcome)

    def _log_outcome(self, outcome: EnactOutcome) -> None:
        if outcome.ok:
            LOG.debug("Enacted %d routes", outcome.attempted)
            return
        LOG.warning(
            "Enacted %d routes with %d failed and %d skipped",
            outcome.attempted,
            len(outcome.failed),
            len(outcome.skipped),
        )

    def teardown(self) -> Optional[EnactOutcome]:
        """Retract the last applied routes and stop enacting.

        Waits for an in-flight enactment to finish rather than interrupting
        it.  Returns ``None`` when nothing had been applied.
        """

        with self._lock:
            self._closed = True
            if self._applied is None and not self._stale:
                LOG.info("No routes applied, nothing to retract")
                return None

            routes = list(dict.fromkeys([*(self._applied or []), *self._stale]))
            LOG.info("Retracting %d routes", len(routes))
            try:
                outcome = self._enactor.retract(routes)
            except EnactError as exc:
                LOG.error("Retraction failed: %s", exc)
                return None
            self._log_outcome(outcome)
            return outcome
