"""Reading and writing the Kubernetes-to-Liqid linkage (ConfigMap + optional Secret)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from kubernetes.client.exceptions import ApiException

from liqid_k8s.cluster_client import ClusterClient
from liqid_k8s.constants import (
    K8S_CONFIG_MAP_GROUP_NAME_KEY,
    K8S_CONFIG_MAP_IP_ADDRESS_KEY,
    K8S_CONFIG_NAME,
    K8S_CONFIG_NAMESPACE,
    K8S_SECRET_CREDENTIALS_KEY,
    K8S_SECRET_NAME,
    K8S_SECRET_NAMESPACE,
)
from liqid_k8s.credentials import Credentials
from liqid_k8s.errors import ConfigurationDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Linkage:
    address: str
    group_name: str
    username: Optional[str] = None
    password: Optional[str] = None


def read_linkage(cluster: ClusterClient) -> Optional[Linkage]:
    """
    Read the linkage from the cluster.

    Returns:
        The linkage, or None when no ConfigMap exists (404)

    Raises:
        ConfigurationDataError: If the ConfigMap or Secret content is unusable
        ApiException: For any other Kubernetes API failure
    """
    try:
        data = cluster.get_config_map(K8S_CONFIG_NAMESPACE, K8S_CONFIG_NAME)
    except ApiException as e:
        if e.status == 404:
            logger.info("No linkage ConfigMap present")
            return None
        raise

    address = data.get(K8S_CONFIG_MAP_IP_ADDRESS_KEY)
    group_name = data.get(K8S_CONFIG_MAP_GROUP_NAME_KEY)
    if not address or not group_name:
        raise ConfigurationDataError(
            f"ConfigMap {K8S_CONFIG_NAMESPACE}/{K8S_CONFIG_NAME} is missing "
            f"{K8S_CONFIG_MAP_IP_ADDRESS_KEY} or {K8S_CONFIG_MAP_GROUP_NAME_KEY}"
        )

    # A missing Secret simply means the Director runs without authentication.
    username = None
    password = None
    try:
        secret = cluster.get_secret(K8S_SECRET_NAMESPACE, K8S_SECRET_NAME)
    except ApiException as e:
        if e.status != 404:
            raise
    except ValueError as e:
        raise ConfigurationDataError(f"Secret {K8S_SECRET_NAMESPACE}/{K8S_SECRET_NAME} is not decodable: {e}") from e
    else:
        creds = Credentials.unmangle(secret.get(K8S_SECRET_CREDENTIALS_KEY))
        username = creds.username
        password = creds.password

    return Linkage(address=address, group_name=group_name, username=username, password=password)


def write_linkage(cluster: ClusterClient, linkage: Linkage) -> None:
    """Replace any existing linkage with the given one."""
    delete_linkage(cluster)
    cluster.create_config_map(
        K8S_CONFIG_NAMESPACE,
        K8S_CONFIG_NAME,
        {
            K8S_CONFIG_MAP_IP_ADDRESS_KEY: linkage.address,
            K8S_CONFIG_MAP_GROUP_NAME_KEY: linkage.group_name,
        },
    )
    if linkage.username is not None:
        mangled = Credentials(linkage.username, linkage.password).mangle()
        cluster.create_secret(K8S_SECRET_NAMESPACE, K8S_SECRET_NAME, {K8S_SECRET_CREDENTIALS_KEY: mangled})
    logger.info(f"Linkage written: {linkage.address} group {linkage.group_name}")


def delete_linkage(cluster: ClusterClient) -> bool:
    """Remove ConfigMap and Secret. Returns True if anything was removed."""
    removed_map = cluster.delete_config_map(K8S_CONFIG_NAMESPACE, K8S_CONFIG_NAME)
    removed_secret = cluster.delete_secret(K8S_SECRET_NAMESPACE, K8S_SECRET_NAME)
    return removed_map or removed_secret
