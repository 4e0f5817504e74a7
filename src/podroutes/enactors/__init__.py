"""Enactment backends turning a route set into host state."""

from .base import EnactOutcome, RouteEnactor  # noqa: F401
from .kernel import DirectKernelEnactor  # noqa: F401
from .template import TemplateReloadEnactor  # noqa: F401

__all__ = [
    "DirectKernelEnactor",
    "EnactOutcome",
    "RouteEnactor",
    "TemplateReloadEnactor",
]
