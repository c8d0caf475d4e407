"""Thin wrapper over the Kubernetes API for nodes, annotations, ConfigMaps and Secrets."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kubernetes import client, config
from kubernetes.client import V1ConfigMap, V1ObjectMeta, V1Secret
from kubernetes.client.exceptions import ApiException

from liqid_k8s.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ClusterNode:
    """A Kubernetes node as far as this tool cares."""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    is_control_plane: bool = False


_CONTROL_PLANE_LABELS = (
    "node-role.kubernetes.io/control-plane",
    "node-role.kubernetes.io/master",
)


def _to_cluster_node(v1_node) -> ClusterNode:
    labels = dict(v1_node.metadata.labels or {})
    return ClusterNode(
        name=v1_node.metadata.name,
        labels=labels,
        annotations=dict(v1_node.metadata.annotations or {}),
        is_control_plane=any(label in labels for label in _CONTROL_PLANE_LABELS),
    )


class ClusterClient:
    """Kubernetes access used by commands and plan actions. All calls block."""

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        core_api: Optional[client.CoreV1Api] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            proxy_url: URL of a ``kubectl proxy``; when unset the in-cluster
                config is tried first, then the local kubeconfig
            timeout_s: Request timeout applied to every call
            core_api: Pre-built CoreV1Api (mainly for tests)

        Raises:
            ConfigurationError: If neither in-cluster config nor a kubeconfig can be loaded
        """
        self.timeout_s = timeout_s
        if core_api is not None:
            self.core = core_api
            return

        if proxy_url:
            configuration = client.Configuration()
            configuration.host = proxy_url
            self.core = client.CoreV1Api(client.ApiClient(configuration))
            logger.info(f"Using Kubernetes API via proxy at {proxy_url}")
            return

        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes config")
        except config.ConfigException:
            try:
                config.load_kube_config()
            except config.ConfigException as e:
                raise ConfigurationError(f"No Kubernetes configuration found: {e}") from e
            logger.info("Loaded kubeconfig")
        self.core = client.CoreV1Api()

    def _kwargs(self) -> Dict[str, float]:
        return {"_request_timeout": self.timeout_s} if self.timeout_s else {}

    # ------------------------------------------------------------------
    # Nodes and annotations
    # ------------------------------------------------------------------
    def get_nodes(self, include_control_plane: bool = False) -> List[ClusterNode]:
        """
        List cluster nodes, ordered by name.

        Args:
            include_control_plane: Also return nodes labelled as control plane

        Returns:
            Nodes as ClusterNode records
        """
        nodes = [_to_cluster_node(n) for n in self.core.list_node(**self._kwargs()).items]
        if not include_control_plane:
            nodes = [n for n in nodes if not n.is_control_plane]
        return sorted(nodes, key=lambda n: n.name)

    def get_annotations_for_node(self, node_name: str) -> Dict[str, str]:
        node = self.core.read_node(node_name, **self._kwargs())
        return dict(node.metadata.annotations or {})

    def update_annotations_for_node(self, node_name: str, annotations: Dict[str, Optional[str]]) -> None:
        """
        Merge-patch annotations onto a node. A value of None removes the key.
        """
        body = {"metadata": {"annotations": annotations}}
        self.core.patch_node(node_name, body, **self._kwargs())
        logger.info(f"Patched {len(annotations)} annotations on node {node_name}")

    # ------------------------------------------------------------------
    # ConfigMaps
    # ------------------------------------------------------------------
    def get_config_map(self, namespace: str, name: str) -> Dict[str, str]:
        cfg_map = self.core.read_namespaced_config_map(name, namespace, **self._kwargs())
        return dict(cfg_map.data or {})

    def create_config_map(self, namespace: str, name: str, data: Dict[str, str]) -> None:
        body = V1ConfigMap(metadata=V1ObjectMeta(name=name, namespace=namespace), data=data)
        self.core.create_namespaced_config_map(namespace, body, **self._kwargs())
        logger.info(f"Created ConfigMap {namespace}/{name}")

    def delete_config_map(self, namespace: str, name: str) -> bool:
        """Delete a ConfigMap. Returns False if it did not exist."""
        try:
            self.core.delete_namespaced_config_map(name, namespace, **self._kwargs())
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        logger.info(f"Deleted ConfigMap {namespace}/{name}")
        return True

    # ------------------------------------------------------------------
    # Secrets. Values are exchanged here as plain strings.
    # ------------------------------------------------------------------
    def get_secret(self, namespace: str, name: str) -> Dict[str, str]:
        secret = self.core.read_namespaced_secret(name, namespace, **self._kwargs())
        return {
            key: base64.b64decode(value).decode("utf-8")
            for key, value in (secret.data or {}).items()
        }

    def create_secret(self, namespace: str, name: str, data: Dict[str, str]) -> None:
        body = V1Secret(
            metadata=V1ObjectMeta(name=name, namespace=namespace),
            string_data=data,
            type="Opaque",
        )
        self.core.create_namespaced_secret(namespace, body, **self._kwargs())
        logger.info(f"Created Secret {namespace}/{name}")

    def delete_secret(self, namespace: str, name: str) -> bool:
        """Delete a Secret. Returns False if it did not exist."""
        try:
            self.core.delete_namespaced_secret(name, namespace, **self._kwargs())
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        logger.info(f"Deleted Secret {namespace}/{name}")
        return True
