"""Signal driven shutdown with route retraction."""

from __future__ import annotations

import logging
import signal
from threading import Event, Lock
from typing import Iterable, Optional

from .enactors.base import EnactOutcome
from .reconciler import ReconciliationLoop

LOG = logging.getLogger(__name__)

EXIT_STATUS = 1


class TerminationHandler:
    """Stop the loop on SIGINT/SIGTERM and retract what it applied.

    The signal callback only sets ``stop_event``; the retraction itself runs
    from :meth:`shutdown`, called by the main thread once the event fired.
    Signals may arrive several times, retraction runs once.
    """

    def __init__(self, loop: ReconciliationLoop, stop_event: Event) -> None:
        self._loop = loop
        self._stop_event = stop_event
        self._lock = Lock()
        self._done = False
        self.outcome: Optional[EnactOutcome] = None

    def install(self, signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)) -> None:
        for signum in signals:
            signal.signal(signum, self)

    def __call__(self, signum, frame) -> None:
        LOG.info("Received signal %s, shutting down", signum)
        self._stop_event.set()

    def shutdown(self) -> int:
        with self._lock:
            if self._done:
                LOG.debug("Shutdown already performed")
                return EXIT_STATUS
            self._done = True

        self._stop_event.set()
        self.outcome = self._loop.teardown()
        LOG.info("Route retraction complete, exiting")
        return EXIT_STATUS
