"""Enactor rendering a routing daemon config file and reloading the daemon."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence

import jinja2

from ..exceptions import ConfigWriteError, ReloadError, TemplateLoadError, TemplateRenderError
from ..routes import Route
from .base import EnactOutcome, RouteEnactor

LOG = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class TemplateReloadEnactor(RouteEnactor):
    """Render ``template`` with the full route set into ``output``.

    The template sees a single variable, ``routes``, holding
    :class:`~podroutes.routes.Route` objects (``destination``, ``nexthop``,
    ``label``).  After the file is written, ``reload_command`` is executed
    without arguments so the routing daemon picks up the new configuration.

    Parameters
    ----------
    template:
        Path to the Jinja2 template.
    output:
        Configuration file to (re)write.
    reload_command:
        Executable run after each successful write.  ``None`` disables the
        reload step.
    retract_on_shutdown:
        When set, :meth:`retract` renders an empty route set and reloads.
        Otherwise retraction is a no-op and the daemon keeps its last
        configuration.
    runner:
        Replacement for :func:`subprocess.run`, used by tests.
    """

    name = "template"

    def __init__(
        self,
        template: Path,
        output: Path,
        reload_command: Optional[str] = None,
        *,
        retract_on_shutdown: bool = False,
        runner: Runner = subprocess.run,
    ) -> None:
        self._template = Path(template)
        self._output = Path(output)
        self._reload_command = reload_command
        self._retract_on_shutdown = retract_on_shutdown
        self._runner = runner
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self._template.parent)),
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )

    @property
    def output(self) -> Path:
        return self._output

    def apply(self, routes: Sequence[Route]) -> EnactOutcome:
        for n, route in enumerate(routes):
            LOG.info("Route #%d, %s %s %s", n, route.label, route.destination, route.nexthop)

        self._write(self.render(routes))
        self._reload()
        return EnactOutcome(attempted=len(routes))

    def retract(self, routes: Sequence[Route]) -> EnactOutcome:
        if not self._retract_on_shutdown:
            LOG.info(
                "Template backend keeps %s on shutdown (%d routes left in place)",
                self._output,
                len(routes),
            )
            return EnactOutcome()

        LOG.info("Rendering empty route set into %s", self._output)
        self._write(self.render([]))
        self._reload()
        return EnactOutcome(attempted=len(routes))

    def render(self, routes: Sequence[Route]) -> str:
        try:
            template = self._env.get_template(self._template.name)
        except jinja2.TemplateNotFound as exc:
            raise TemplateLoadError(f"template {self._template} not found") from exc
        except (jinja2.TemplateSyntaxError, OSError, UnicodeDecodeError) as exc:
            raise TemplateLoadError(f"failed to load template {self._template}: {exc}") from exc

        try:
            return template.render(routes=list(routes))
        except (jinja2.TemplateError, TypeError, ValueError) as exc:
            raise TemplateRenderError(f"failed to render {self._template}: {exc}") from exc

    def _write(self, text: str) -> None:
        tmp_name = None
        try:
            self._output.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=str(self._output.parent),
                prefix=f".{self._output.name}.",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(text)
            os.replace(tmp_name, self._output)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ConfigWriteError(f"failed to write config file {self._output}: {exc}") from exc
        LOG.info("Wrote config file %s", self._output)

    def _reload(self) -> None:
        if not self._reload_command:
            LOG.debug("No reload command configured")
            return

        LOG.info("Running reload command %s", self._reload_command)
        try:
            result = self._runner(
                [self._reload_command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ReloadError(f"failed to run {self._reload_command}: {exc}") from exc

        output = result.stdout or ""
        if result.returncode != 0:
            raise ReloadError(
                f"{self._reload_command} exited with status {result.returncode}",
                output=output,
                returncode=result.returncode,
            )
        LOG.info("Reload command succeeded:\n%s", output)
