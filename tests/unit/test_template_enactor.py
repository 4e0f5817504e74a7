import subprocess
from pathlib import Path

import pytest

from podroutes.enactors.template import TemplateReloadEnactor
from podroutes.exceptions import ReloadError, TemplateLoadError, TemplateRenderError
from podroutes.routes import Route

TEMPLATE = """\
{% for route in routes %}route {{ route.destination }} via {{ route.nexthop }}; # {{ route.label }}
{% endfor %}"""


class RecordingRunner:
    def __init__(self, returncode=0, stdout="reloaded\n"):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, self.returncode, stdout=self.stdout)


def build_enactor(tmp_path: Path, template: str = TEMPLATE, **kwargs):
    template_path = tmp_path / "routes.tmpl"
    template_path.write_text(template)
    runner = kwargs.pop("runner", RecordingRunner())
    enactor = TemplateReloadEnactor(
        template_path,
        tmp_path / "out" / "routes.conf",
        "/usr/local/bin/reload-routes",
        runner=runner,
        **kwargs,
    )
    return enactor, runner


def test_apply_renders_and_reloads(tmp_path: Path):
    enactor, runner = build_enactor(tmp_path)
    routes = [Route("10.1.0.0/24", "10.0.0.1", "n1"), Route("10.2.0.0/24", "10.0.0.2", "n2")]

    outcome = enactor.apply(routes)

    assert outcome.ok
    assert outcome.attempted == 2
    assert enactor.output.read_text() == (
        "route 10.1.0.0/24 via 10.0.0.1; # n1\n"
        "route 10.2.0.0/24 via 10.0.0.2; # n2\n"
    )
    assert len(runner.calls) == 1
    args, kwargs = runner.calls[0]
    assert args == ["/usr/local/bin/reload-routes"]
    assert kwargs["stderr"] == subprocess.STDOUT


def test_apply_replaces_previous_config(tmp_path: Path):
    enactor, _ = build_enactor(tmp_path)
    enactor.output.parent.mkdir(parents=True)
    enactor.output.write_text("stale content that is much longer than the new one\n")

    enactor.apply([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    assert enactor.output.read_text() == "route 10.1.0.0/24 via 10.0.0.1; # n1\n"
    assert [p.name for p in enactor.output.parent.iterdir()] == ["routes.conf"]


def test_missing_template_aborts_without_reload(tmp_path: Path):
    runner = RecordingRunner()
    enactor = TemplateReloadEnactor(
        tmp_path / "missing.tmpl", tmp_path / "routes.conf", "reload", runner=runner
    )

    with pytest.raises(TemplateLoadError):
        enactor.apply([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    assert runner.calls == []
    assert not (tmp_path / "routes.conf").exists()


def test_malformed_template_is_a_load_error(tmp_path: Path):
    enactor, runner = build_enactor(tmp_path, template="{% for route in routes %}")

    with pytest.raises(TemplateLoadError):
        enactor.apply([])

    assert runner.calls == []


def test_render_failure_does_not_reload(tmp_path: Path):
    enactor, runner = build_enactor(tmp_path, template="{{ routes[0].gateway }}\n")

    with pytest.raises(TemplateRenderError):
        enactor.apply([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    assert runner.calls == []
    assert not enactor.output.exists()


def test_reload_failure_reports_output(tmp_path: Path):
    enactor, _ = build_enactor(tmp_path, runner=RecordingRunner(returncode=3, stdout="bird: syntax error\n"))

    with pytest.raises(ReloadError) as excinfo:
        enactor.apply([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    assert excinfo.value.returncode == 3
    assert "syntax error" in excinfo.value.output
    assert enactor.output.exists()


def test_reload_spawn_failure(tmp_path: Path):
    def runner(args, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", args[0])

    enactor, _ = build_enactor(tmp_path, runner=runner)

    with pytest.raises(ReloadError):
        enactor.apply([])


def test_retract_is_noop_by_default(tmp_path: Path):
    enactor, runner = build_enactor(tmp_path)
    enactor.apply([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    outcome = enactor.retract([Route("10.1.0.0/24", "10.0.0.1", "n1")])

    assert outcome.attempted == 0
    assert len(runner.calls) == 1
    assert "10.1.0.0/24" in enactor.output.read_text()


def test_retract_renders_empty_set_when_enabled(tmp_path: Path):
    enactor, runner = build_enactor(tmp_path, retract_on_shutdown=True)
    routes = [Route("10.1.0.0/24", "10.0.0.1", "n1")]
    enactor.apply(routes)

    outcome = enactor.retract(routes)

    assert outcome.attempted == 1
    assert enactor.output.read_text() == ""
    assert len(runner.calls) == 2


def test_no_reload_command(tmp_path: Path):
    template_path = tmp_path / "routes.tmpl"
    template_path.write_text(TEMPLATE)
    enactor = TemplateReloadEnactor(template_path, tmp_path / "routes.conf", None)

    assert enactor.apply([]).ok
    assert (tmp_path / "routes.conf").read_text() == ""
