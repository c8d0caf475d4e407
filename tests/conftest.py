from typing import Dict, List, Optional, Tuple

import pytest
from kubernetes.client.exceptions import ApiException

from liqid_k8s.cluster_client import ClusterNode
from liqid_k8s.constants import DeviceType
from liqid_k8s.inventory import DeviceInfo, DeviceRelation, DeviceStatus, Group, Inventory, Machine


class FakeFabricClient:
    """In-memory stand-in for LiqidClient. Every call is recorded in self.calls."""

    def __init__(self, groups=(), machines=(), statuses=(), infos=(), relations=()):
        self.groups: List[Group] = list(groups)
        self.machines: List[Machine] = list(machines)
        self.statuses: List[DeviceStatus] = list(statuses)
        self.infos: List[DeviceInfo] = list(infos)
        self.relations: List[DeviceRelation] = list(relations)
        self.calls: List[Tuple] = []
        self.logged_in_as: Optional[str] = None
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def mutations(self) -> List[Tuple]:
        return [c for c in self.calls if not c[0].startswith("get_")]

    def login(self, label, username, password):
        self.calls.append(("login", label, username, password))
        self.logged_in_as = username

    def logout(self):
        self.calls.append(("logout",))
        self.logged_in_as = None

    def is_logged_in(self):
        return self.logged_in_as is not None

    def get_groups(self):
        self.calls.append(("get_groups",))
        return list(self.groups)

    def get_machines(self):
        self.calls.append(("get_machines",))
        return list(self.machines)

    def get_device_statuses(self, group_id=None, machine_id=None):
        self.calls.append(("get_device_statuses", group_id, machine_id))
        return list(self.statuses)

    def get_device_info(self):
        self.calls.append(("get_device_info",))
        return list(self.infos)

    def get_device_relations(self):
        self.calls.append(("get_device_relations",))
        return list(self.relations)

    def create_group(self, group_name):
        self.calls.append(("create_group", group_name))
        group = Group(group_id=self._new_id(), name=group_name)
        self.groups.append(group)
        return group

    def delete_group(self, group_id):
        self.calls.append(("delete_group", group_id))
        self.groups = [g for g in self.groups if g.group_id != group_id]
        return True

    def create_machine(self, group_id, machine_name):
        self.calls.append(("create_machine", group_id, machine_name))
        machine = Machine(machine_id=self._new_id(), name=machine_name, group_id=group_id)
        self.machines.append(machine)
        return machine

    def delete_machine(self, machine_id):
        self.calls.append(("delete_machine", machine_id))
        self.machines = [m for m in self.machines if m.machine_id != machine_id]
        return True

    def add_device_to_group(self, device_id, group_id):
        self.calls.append(("add_device_to_group", device_id, group_id))

    def remove_device_from_group(self, device_id, group_id):
        self.calls.append(("remove_device_from_group", device_id, group_id))

    def add_device_to_machine(self, device_id, machine_id):
        self.calls.append(("add_device_to_machine", device_id, machine_id))

    def remove_device_from_machine(self, device_id, machine_id):
        self.calls.append(("remove_device_from_machine", device_id, machine_id))

    def set_user_description(self, device_id, description):
        self.calls.append(("set_user_description", device_id, description))


def _not_found():
    return ApiException(status=404, reason="Not Found")


class FakeClusterClient:
    """In-memory stand-in for ClusterClient; missing objects raise a 404 ApiException."""

    def __init__(self, nodes=(), config_maps=None, secrets=None):
        self.nodes: Dict[str, ClusterNode] = {n.name: n for n in nodes}
        self.config_maps: Dict[Tuple[str, str], Dict[str, str]] = dict(config_maps or {})
        self.secrets: Dict[Tuple[str, str], Dict[str, str]] = dict(secrets or {})
        self.patches: List[Tuple[str, Dict[str, Optional[str]]]] = []

    def get_nodes(self, include_control_plane=False):
        nodes = [n for n in self.nodes.values() if include_control_plane or not n.is_control_plane]
        return sorted(nodes, key=lambda n: n.name)

    def get_annotations_for_node(self, node_name):
        if node_name not in self.nodes:
            raise _not_found()
        return dict(self.nodes[node_name].annotations)

    def update_annotations_for_node(self, node_name, annotations):
        if node_name not in self.nodes:
            raise _not_found()
        self.patches.append((node_name, dict(annotations)))
        current = self.nodes[node_name].annotations
        for key, value in annotations.items():
            if value is None:
                current.pop(key, None)
            else:
                current[key] = value

    def get_config_map(self, namespace, name):
        if (namespace, name) not in self.config_maps:
            raise _not_found()
        return dict(self.config_maps[(namespace, name)])

    def create_config_map(self, namespace, name, data):
        if (namespace, name) in self.config_maps:
            raise ApiException(status=409, reason="Conflict")
        self.config_maps[(namespace, name)] = dict(data)

    def delete_config_map(self, namespace, name):
        return self.config_maps.pop((namespace, name), None) is not None

    def get_secret(self, namespace, name):
        if (namespace, name) not in self.secrets:
            raise _not_found()
        return dict(self.secrets[(namespace, name)])

    def create_secret(self, namespace, name, data):
        if (namespace, name) in self.secrets:
            raise ApiException(status=409, reason="Conflict")
        self.secrets[(namespace, name)] = dict(data)

    def delete_secret(self, namespace, name):
        return self.secrets.pop((namespace, name), None) is not None


# Sample fabric: group "k8s" with two machines, each holding one compute
# device whose description names a worker node; four GPUs and one SSD are
# free in the group; gpu4 sits outside any group.
GROUPS = [Group(1, "k8s"), Group(2, "spare")]
MACHINES = [Machine(10, "mach-a", 1), Machine(11, "mach-b", 1)]
STATUSES = [
    DeviceStatus(0x100, "cpu0", DeviceType.compute),
    DeviceStatus(0x101, "cpu1", DeviceType.compute),
    DeviceStatus(0x200, "gpu0", DeviceType.gpu),
    DeviceStatus(0x201, "gpu1", DeviceType.gpu),
    DeviceStatus(0x202, "gpu2", DeviceType.gpu),
    DeviceStatus(0x203, "gpu3", DeviceType.gpu),
    DeviceStatus(0x204, "gpu4", DeviceType.gpu),
    DeviceStatus(0x300, "ssd0", DeviceType.ssd),
]
INFOS = [
    DeviceInfo(0x100, "Dell", "R740", "worker-1"),
    DeviceInfo(0x101, "Dell", "R740", "worker-2"),
    DeviceInfo(0x200, "NVIDIA", "A100", "n/a"),
]
RELATIONS = [
    DeviceRelation(0x100, group_id=1),
    DeviceRelation(0x100, group_id=1, machine_id=10),
    DeviceRelation(0x101, group_id=1, machine_id=11),
    DeviceRelation(0x200, group_id=1),
    DeviceRelation(0x201, group_id=1),
    DeviceRelation(0x202, group_id=1),
    DeviceRelation(0x203, group_id=1),
    DeviceRelation(0x300, group_id=1),
]


@pytest.fixture
def fabric():
    return FakeFabricClient(GROUPS, MACHINES, STATUSES, INFOS, RELATIONS)


@pytest.fixture
def inventory():
    return Inventory.from_records(GROUPS, MACHINES, STATUSES, INFOS, RELATIONS)


@pytest.fixture
def worker_nodes():
    return [
        ClusterNode("control-1", {"node-role.kubernetes.io/control-plane": ""}, {}, True),
        ClusterNode("worker-1"),
        ClusterNode("worker-2"),
        ClusterNode("worker-3"),
    ]


@pytest.fixture
def cluster(worker_nodes):
    return FakeClusterClient(nodes=worker_nodes)


@pytest.fixture
def fake_cluster_class():
    return FakeClusterClient


@pytest.fixture
def fake_fabric_class():
    return FakeFabricClient
