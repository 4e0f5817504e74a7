"""Abstract interface for route enactors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence

from ..routes import Route


@dataclass
class EnactOutcome:
    """Per-route result of an enactment.

    ``failed`` routes hit an error in the backend primitive and may succeed on
    a later attempt.  ``skipped`` routes could not be interpreted at all
    (malformed destination or next-hop) and are not worth retrying.
    """

    attempted: int = 0
    failed: List[Route] = field(default_factory=list)
    skipped: List[Route] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


class RouteEnactor(ABC):
    """Base class for backends driven by :class:`ReconciliationLoop`."""

    name = "enactor"

    # Set when apply() only adds or replaces routes, so routes dropped from
    # the desired set have to be retracted explicitly.
    withdraws_stale = False

    @abstractmethod
    def apply(self, routes: Sequence[Route]) -> EnactOutcome:
        """Make ``routes`` the effective route set.

        Raises :class:`~podroutes.exceptions.EnactError` when the enactment
        had to be aborted as a whole.
        """

    @abstractmethod
    def retract(self, routes: Sequence[Route]) -> EnactOutcome:
        """Remove ``routes`` previously installed by :meth:`apply`."""
