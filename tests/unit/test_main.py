from pathlib import Path
from threading import Event

from podroutes.enactors import DirectKernelEnactor, TemplateReloadEnactor
from podroutes.reconciler import ReconciliationLoop
from podroutes.termination import TerminationHandler
from podroutes_agent import main as main_module
from podroutes_agent.config import AgentConfig
from podroutes_agent.inventory import FileNodeInventory
from podroutes_agent.main import EXIT_BOOTSTRAP_FAILURE, build_enactor, build_inventory, main

NODES_YAML = """
items:
  - metadata: {name: n1}
    spec: {podCIDR: 10.1.0.0/24}
    status:
      addresses:
        - {type: InternalIP, address: 10.0.0.1}
"""


def test_build_enactor_selects_backend():
    config = AgentConfig()
    assert isinstance(build_enactor(config), TemplateReloadEnactor)

    config.enactor.type = "kernel"
    assert isinstance(build_enactor(config), DirectKernelEnactor)


def test_build_file_inventory(tmp_path: Path):
    config = AgentConfig()
    config.inventory.type = "file"
    config.inventory.path = tmp_path / "nodes.yaml"

    assert isinstance(build_inventory(config), FileNodeInventory)


def test_once_renders_template(tmp_path: Path):
    nodes = tmp_path / "nodes.yaml"
    nodes.write_text(NODES_YAML)
    template = tmp_path / "routes.tmpl"
    template.write_text("{% for r in routes %}{{ r.destination }} {{ r.nexthop }} {{ r.label }}\n{% endfor %}")
    output = tmp_path / "routes.conf"

    status = main(
        [
            "--nodes-file", str(nodes),
            "--template", str(template),
            "--output", str(output),
            "--reload-command", str(tmp_path / "missing-reload.sh"),
            "--once",
        ]
    )

    assert status == 0
    assert output.read_text() == "10.1.0.0/24 10.0.0.1 n1\n"


def test_bootstrap_failure_exit_status(tmp_path: Path):
    config = tmp_path / "podroutes.yaml"
    config.write_text("inventory:\n  kubeconfig: %s\n" % (tmp_path / "missing"))

    assert main(["--config", str(config)]) == EXIT_BOOTSTRAP_FAILURE


def test_invalid_sync_period(tmp_path: Path):
    assert main(["--nodes-file", str(tmp_path / "n.yaml"), "--sync-period", "0"]) == EXIT_BOOTSTRAP_FAILURE


def test_main_joins_loop_after_shutdown(tmp_path: Path, monkeypatch):
    started = []

    class TrackingLoop(ReconciliationLoop):
        def start(self):
            started.append(self)
            super().start()

    stop_event = Event()
    stop_event.set()
    monkeypatch.setattr(main_module, "Event", lambda: stop_event)
    monkeypatch.setattr(main_module, "ReconciliationLoop", TrackingLoop)
    monkeypatch.setattr(TerminationHandler, "install", lambda self, signals=(): None)
    nodes = tmp_path / "nodes.yaml"
    nodes.write_text(NODES_YAML)

    status = main(["--nodes-file", str(nodes), "--output", str(tmp_path / "routes.conf")])

    assert status == 1
    assert len(started) == 1
    assert not started[0].is_alive()
