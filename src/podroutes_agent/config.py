"""YAML configuration loader for the podroutes agent."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from podroutes.enactors.kernel import RT_TABLE_MAIN, RTPROT_STATIC

INVENTORY_TYPES = ("kubernetes", "file")
ENACTOR_TYPES = ("template", "kernel")
COMPARE_MODES = ("ordered", "unordered")


def default_kubeconfig() -> Path:
    env = os.environ.get("KUBECONFIG")
    if env:
        return Path(env.split(os.pathsep)[0])
    return Path.home() / ".kube" / "config"


@dataclass
class InventoryConfig:
    type: str = "kubernetes"
    kubeconfig: Path = field(default_factory=default_kubeconfig)
    in_cluster: bool = False
    path: Optional[Path] = None


@dataclass
class ReconcileConfig:
    sync_period: float = 600.0
    compare: str = "ordered"
    retry_failed: bool = False


@dataclass
class EnactorConfig:
    type: str = "template"
    template: Path = Path("config.tmpl")
    output: Path = Path("config.conf")
    reload_command: Optional[str] = "./reload.sh"
    retract_on_shutdown: bool = False
    table: int = RT_TABLE_MAIN
    proto: int = RTPROT_STATIC


@dataclass
class AgentConfig:
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    enactor: EnactorConfig = field(default_factory=EnactorConfig)


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' section must be a mapping")
    return section


def _choice(value, allowed, key: str) -> str:
    value = str(value)
    if value not in allowed:
        raise ValueError(f"Unsupported {key} '{value}', expected one of {', '.join(allowed)}")
    return value


def _parse_inventory(section: dict) -> InventoryConfig:
    inventory = InventoryConfig(
        type=_choice(section.get("type", "kubernetes"), INVENTORY_TYPES, "inventory type"),
        in_cluster=bool(section.get("in_cluster", False)),
    )
    if section.get("kubeconfig"):
        inventory.kubeconfig = Path(section["kubeconfig"]).expanduser()
    if section.get("path"):
        inventory.path = Path(section["path"])
    if inventory.type == "file" and inventory.path is None:
        raise ValueError("file inventory requires 'path'")
    return inventory


def _parse_reconcile(section: dict) -> ReconcileConfig:
    sync_period = float(section.get("sync_period", 600))
    if sync_period <= 0:
        raise ValueError("'sync_period' must be positive")
    return ReconcileConfig(
        sync_period=sync_period,
        compare=_choice(section.get("compare", "ordered"), COMPARE_MODES, "compare mode"),
        retry_failed=bool(section.get("retry_failed", False)),
    )


def _parse_enactor(section: dict) -> EnactorConfig:
    defaults = EnactorConfig()
    return EnactorConfig(
        type=_choice(section.get("type", "template"), ENACTOR_TYPES, "enactor type"),
        template=Path(section.get("template", defaults.template)),
        output=Path(section.get("output", defaults.output)),
        reload_command=section.get("reload_command", defaults.reload_command),
        retract_on_shutdown=bool(section.get("retract_on_shutdown", False)),
        table=int(section.get("table", defaults.table)),
        proto=int(section.get("proto", defaults.proto)),
    )


def load_config(path: Optional[Path] = None) -> AgentConfig:
    """Load ``path`` or return the defaults when no file is given."""

    if path is None:
        return AgentConfig()

    try:
        data = yaml.safe_load(Path(path).read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid agent configuration {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Agent configuration must be a mapping")

    return AgentConfig(
        inventory=_parse_inventory(_section(data, "inventory")),
        reconcile=_parse_reconcile(_section(data, "reconcile")),
        enactor=_parse_enactor(_section(data, "enactor")),
    )
