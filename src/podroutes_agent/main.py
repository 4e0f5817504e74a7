"""Entry point for the podroutes agent."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from threading import Event

from podroutes.enactors import DirectKernelEnactor, RouteEnactor, TemplateReloadEnactor
from podroutes.exceptions import InventoryError
from podroutes.reconciler import ReconciliationLoop
from podroutes.termination import TerminationHandler

from .config import AgentConfig, load_config
from .inventory import FileNodeInventory, KubernetesNodeInventory

LOG = logging.getLogger(__name__)

EXIT_BOOTSTRAP_FAILURE = 2
LOOP_JOIN_TIMEOUT = 10.0


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keep host routes in sync with the cluster pod subnets"
    )
    parser.add_argument("--config", type=Path, help="Path to the agent configuration file")
    parser.add_argument("--kubeconfig", type=Path, help="kubeconfig file to load")
    parser.add_argument("--nodes-file", type=Path, help="Read nodes from a file instead of the API")
    parser.add_argument("--backend", choices=("template", "kernel"), help="Enactment backend")
    parser.add_argument("--template", type=Path, help="Template file to render")
    parser.add_argument("--output", type=Path, help="Configuration file to write")
    parser.add_argument("--reload-command", help="Command run after the config file is written")
    parser.add_argument("--sync-period", type=float, help="Seconds between reconciliations")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation and exit without retracting routes",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def apply_overrides(config: AgentConfig, args: argparse.Namespace) -> AgentConfig:
    if args.kubeconfig:
        config.inventory.kubeconfig = args.kubeconfig
    if args.nodes_file:
        config.inventory.type = "file"
        config.inventory.path = args.nodes_file
    if args.backend:
        config.enactor.type = args.backend
    if args.template:
        config.enactor.template = args.template
    if args.output:
        config.enactor.output = args.output
    if args.reload_command:
        config.enactor.reload_command = args.reload_command
    if args.sync_period is not None:
        if args.sync_period <= 0:
            raise ValueError("--sync-period must be positive")
        config.reconcile.sync_period = args.sync_period
    return config


def build_inventory(config: AgentConfig):
    if config.inventory.type == "file":
        return FileNodeInventory(config.inventory.path)
    return KubernetesNodeInventory(
        config.inventory.kubeconfig,
        in_cluster=config.inventory.in_cluster,
    )


def build_enactor(config: AgentConfig) -> RouteEnactor:
    cfg = config.enactor
    if cfg.type == "kernel":
        return DirectKernelEnactor(table=cfg.table, proto=cfg.proto)
    return TemplateReloadEnactor(
        cfg.template,
        cfg.output,
        cfg.reload_command,
        retract_on_shutdown=cfg.retract_on_shutdown,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = apply_overrides(load_config(args.config), args)
        inventory = build_inventory(config)
    except (InventoryError, ValueError, OSError) as exc:
        LOG.error("Failed to start agent: %s", exc)
        return EXIT_BOOTSTRAP_FAILURE

    enactor = build_enactor(config)
    stop_event = Event()
    loop = ReconciliationLoop(
        inventory,
        enactor,
        interval=config.reconcile.sync_period,
        stop_event=stop_event,
        ordered_compare=config.reconcile.compare == "ordered",
        retry_failed=config.reconcile.retry_failed,
    )

    if args.once:
        loop.tick()
        return 0

    handler = TerminationHandler(loop, stop_event)
    handler.install()

    LOG.info("Initial reconciliation fired")
    loop.start()

    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
    except KeyboardInterrupt:  # pragma: no cover - fallback if signal not set
        stop_event.set()

    status = handler.shutdown()
    loop.join(timeout=LOOP_JOIN_TIMEOUT)
    if loop.is_alive():
        LOG.warning("Reconciliation loop still busy after %ss", LOOP_JOIN_TIMEOUT)

    LOG.info("podroutes agent stopped")
    return status


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
