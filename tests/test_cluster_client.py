import base64
from types import SimpleNamespace
from unittest import mock

import pytest
from kubernetes.client.exceptions import ApiException

from liqid_k8s.cluster_client import ClusterClient
from liqid_k8s.errors import ConfigurationError


def _node(name, labels=None, annotations=None):
    return SimpleNamespace(metadata=SimpleNamespace(name=name, labels=labels, annotations=annotations))


@pytest.fixture
def core():
    return mock.MagicMock()


@pytest.fixture
def cluster_client(core):
    return ClusterClient(timeout_s=15, core_api=core)


def test_get_nodes_skips_control_plane_and_sorts(cluster_client, core):
    core.list_node.return_value = SimpleNamespace(items=[
        _node("worker-2"),
        _node("master", labels={"node-role.kubernetes.io/master": ""}),
        _node("worker-1", annotations={"liqid.com/gpu": "1"}),
    ])

    nodes = cluster_client.get_nodes()
    assert [n.name for n in nodes] == ["worker-1", "worker-2"]
    assert nodes[0].annotations == {"liqid.com/gpu": "1"}
    core.list_node.assert_called_once_with(_request_timeout=15)

    everything = cluster_client.get_nodes(include_control_plane=True)
    assert [n.name for n in everything] == ["master", "worker-1", "worker-2"]
    assert everything[0].is_control_plane


def test_update_annotations_sends_merge_patch(cluster_client, core):
    cluster_client.update_annotations_for_node("worker-1", {"liqid.com/gpu": None})
    core.patch_node.assert_called_once_with(
        "worker-1", {"metadata": {"annotations": {"liqid.com/gpu": None}}}, _request_timeout=15
    )


def test_get_config_map_returns_data(cluster_client, core):
    core.read_namespaced_config_map.return_value = SimpleNamespace(data={"IPAddress": "10.0.0.5"})
    assert cluster_client.get_config_map("default", "liqid") == {"IPAddress": "10.0.0.5"}
    core.read_namespaced_config_map.assert_called_once_with("liqid", "default", _request_timeout=15)


def test_get_secret_decodes_values(cluster_client, core):
    encoded = base64.b64encode(b"YWRtaW4=").decode("ascii")
    core.read_namespaced_secret.return_value = SimpleNamespace(data={"Credentials": encoded})
    assert cluster_client.get_secret("default", "liqid") == {"Credentials": "YWRtaW4="}


def test_create_secret_uses_string_data(cluster_client, core):
    cluster_client.create_secret("default", "liqid", {"Credentials": "abc"})
    body = core.create_namespaced_secret.call_args.args[1]
    assert body.string_data == {"Credentials": "abc"}
    assert body.type == "Opaque"
    assert body.metadata.name == "liqid"


def test_delete_missing_objects_returns_false(cluster_client, core):
    core.delete_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")
    core.delete_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")
    assert cluster_client.delete_config_map("default", "liqid") is False
    assert cluster_client.delete_secret("default", "liqid") is False


def test_delete_other_errors_propagate(cluster_client, core):
    core.delete_namespaced_config_map.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ApiException):
        cluster_client.delete_config_map("default", "liqid")


def test_proxy_url_configures_api_host():
    with mock.patch("liqid_k8s.cluster_client.client.CoreV1Api") as core_cls, \
            mock.patch("liqid_k8s.cluster_client.client.ApiClient") as api_client_cls:
        ClusterClient(proxy_url="http://127.0.0.1:8001")
    configuration = api_client_cls.call_args.args[0]
    assert configuration.host == "http://127.0.0.1:8001"
    core_cls.assert_called_once_with(api_client_cls.return_value)


def test_falls_back_to_kubeconfig():
    from kubernetes import config

    with mock.patch.object(config, "load_incluster_config", side_effect=config.ConfigException("no")), \
            mock.patch.object(config, "load_kube_config") as load_kube, \
            mock.patch("liqid_k8s.cluster_client.client.CoreV1Api"):
        ClusterClient()
    load_kube.assert_called_once_with()


def test_missing_config_is_a_configuration_error():
    from kubernetes import config

    with mock.patch.object(config, "load_incluster_config", side_effect=config.ConfigException("no")), \
            mock.patch.object(config, "load_kube_config", side_effect=config.ConfigException("none")):
        with pytest.raises(ConfigurationError):
            ClusterClient()
