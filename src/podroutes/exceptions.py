"""Exception hierarchy shared by the engine and the agent."""

from __future__ import annotations


class PodRoutesError(Exception):
    """Base class for all errors raised by this project."""


class InventoryError(PodRoutesError):
    """The node inventory could not be built or queried."""


class EnactError(PodRoutesError):
    """An enactment was aborted as a whole."""


class TemplateLoadError(EnactError):
    pass


class TemplateRenderError(EnactError):
    pass


class ConfigWriteError(EnactError):
    pass


class ReloadError(EnactError):
    """The reload command failed to start or exited non-zero."""

    def __init__(self, message: str, output: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.output = output
        self.returncode = returncode
