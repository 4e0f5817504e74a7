"""Node inventory backed by the Kubernetes API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from podroutes.exceptions import InventoryError
from podroutes.routes import NodeAddress, NodeRecord

LOG = logging.getLogger(__name__)


def node_from_v1(node) -> NodeRecord:
    """Convert a ``V1Node`` into a :class:`NodeRecord`."""

    spec = node.spec
    status = node.status
    addresses = tuple(
        NodeAddress(type=a.type or "", address=a.address or "")
        for a in (status.addresses if status and status.addresses else [])
    )
    return NodeRecord(
        name=node.metadata.name,
        pod_cidr=spec.pod_cidr if spec else None,
        addresses=addresses,
    )


class KubernetesNodeInventory:
    """List cluster nodes through ``CoreV1Api``.

    The API client is built at construction time so that bad credentials are
    reported before the reconciliation loop starts.
    """

    def __init__(
        self,
        kubeconfig: Optional[Path] = None,
        *,
        in_cluster: bool = False,
        api: Optional[k8s_client.CoreV1Api] = None,
    ) -> None:
        self._api = api or self._build_api(kubeconfig, in_cluster)

    @staticmethod
    def _build_api(kubeconfig: Optional[Path], in_cluster: bool) -> k8s_client.CoreV1Api:
        try:
            if in_cluster:
                k8s_config.load_incluster_config()
                LOG.info("Using in-cluster Kubernetes configuration")
                return k8s_client.CoreV1Api()

            api_client = k8s_config.new_client_from_config(
                config_file=str(kubeconfig) if kubeconfig else None
            )
        except (ConfigException, OSError, ValueError) as exc:
            raise InventoryError(f"failed to create Kubernetes client: {exc}") from exc

        LOG.info("Using kubeconfig %s", kubeconfig or "(default)")
        return k8s_client.CoreV1Api(api_client)

    def list_nodes(self) -> List[NodeRecord]:
        try:
            node_list = self._api.list_node()
        except ApiException as exc:
            raise InventoryError(f"cannot list nodes: {exc.status} {exc.reason}") from exc
        except Exception as exc:
            raise InventoryError(f"cannot list nodes: {exc}") from exc

        return [node_from_v1(node) for node in node_list.items or []]
