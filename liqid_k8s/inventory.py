"""
In-memory mirror of the Liqid fabric inventory.

The mirror is fetched once per command and then patched in place by the
notify_* hooks as plan actions mutate the fabric, so that later actions in the
same plan see the effect of earlier ones without a re-fetch.

Every lookup is a dictionary access; network I/O only happens in build().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from liqid_k8s.constants import DeviceType, GeneralType, TYPE_CONVERSION_MAP
from liqid_k8s.errors import ConfigurationDataError

if TYPE_CHECKING:
    from liqid_k8s.fabric_client import FabricClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Group:
    group_id: int
    name: str


@dataclass(frozen=True)
class Machine:
    machine_id: int
    name: str
    group_id: int


@dataclass(frozen=True)
class DeviceStatus:
    """Identity of a device. Never changes within a run."""
    device_id: int
    name: str
    device_type: DeviceType

    @property
    def general_type(self) -> GeneralType:
        return TYPE_CONVERSION_MAP[self.device_type]


@dataclass(frozen=True)
class DeviceInfo:
    device_id: int
    vendor: str = ""
    model: str = ""
    user_description: Optional[str] = None


@dataclass(frozen=True)
class DeviceRelation:
    device_id: int
    group_id: Optional[int] = None
    machine_id: Optional[int] = None


def _index_unique(items: Iterable, id_attr: str, kind: str):
    by_id: Dict[int, object] = {}
    by_name: Dict[str, object] = {}
    for item in items:
        item_id = getattr(item, id_attr)
        if item_id in by_id:
            raise ConfigurationDataError(f"{kind} id {item_id} reported more than once")
        if item.name in by_name:
            raise ConfigurationDataError(f"{kind} name '{item.name}' is not unique")
        by_id[item_id] = item
        by_name[item.name] = item
    return by_id, by_name


class Inventory:
    """Snapshot of groups, machines, devices and their relations."""

    def __init__(self) -> None:
        self.groups_by_id: Dict[int, Group] = {}
        self.groups_by_name: Dict[str, Group] = {}
        self.machines_by_id: Dict[int, Machine] = {}
        self.machines_by_name: Dict[str, Machine] = {}
        self.device_status_by_id: Dict[int, DeviceStatus] = {}
        self.device_status_by_name: Dict[str, DeviceStatus] = {}
        self.device_info_by_id: Dict[int, DeviceInfo] = {}
        self.relations_by_device_id: Dict[int, DeviceRelation] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def build(cls, fabric_client: "FabricClient") -> "Inventory":
        """
        Fetch the complete inventory from the fabric.

        Args:
            fabric_client: Connected (and if necessary logged in) fabric client

        Returns:
            A populated Inventory

        Raises:
            ConfigurationDataError: If the fabric reports cross references which
                cannot be resolved
            FabricError: If any fabric call fails
        """
        logger.info("Fetching Liqid inventory")
        inventory = cls.from_records(
            groups=fabric_client.get_groups(),
            machines=fabric_client.get_machines(),
            statuses=fabric_client.get_device_statuses(),
            infos=fabric_client.get_device_info(),
            relations=fabric_client.get_device_relations(),
        )
        logger.info(
            f"Inventory: {len(inventory.groups_by_id)} groups, "
            f"{len(inventory.machines_by_id)} machines, "
            f"{len(inventory.device_status_by_id)} devices"
        )
        return inventory

    @classmethod
    def from_records(
        cls,
        groups: Iterable[Group],
        machines: Iterable[Machine],
        statuses: Iterable[DeviceStatus],
        infos: Iterable[DeviceInfo] = (),
        relations: Iterable[DeviceRelation] = (),
    ) -> "Inventory":
        """Assemble and cross-check an inventory from plain records."""
        inv = cls()
        inv.groups_by_id, inv.groups_by_name = _index_unique(groups, "group_id", "Group")
        inv.machines_by_id, inv.machines_by_name = _index_unique(machines, "machine_id", "Machine")
        inv.device_status_by_id, inv.device_status_by_name = _index_unique(statuses, "device_id", "Device")

        for mach in inv.machines_by_id.values():
            if mach.group_id not in inv.groups_by_id:
                raise ConfigurationDataError(
                    f"Machine '{mach.name}' refers to unknown group id {mach.group_id}"
                )

        for info in infos:
            if info.device_id not in inv.device_status_by_id:
                raise ConfigurationDataError(f"Device info refers to unknown device id {info.device_id}")
            inv.device_info_by_id[info.device_id] = info

        for device_id in inv.device_status_by_id:
            inv.device_info_by_id.setdefault(device_id, DeviceInfo(device_id=device_id))
            inv.relations_by_device_id[device_id] = DeviceRelation(device_id=device_id)

        for rel in relations:
            inv._merge_relation(rel)

        return inv

    def _merge_relation(self, rel: DeviceRelation) -> None:
        if rel.device_id not in self.device_status_by_id:
            raise ConfigurationDataError(f"Relation refers to unknown device id {rel.device_id}")

        group_id = rel.group_id
        machine_id = rel.machine_id
        if machine_id is not None:
            machine = self.machines_by_id.get(machine_id)
            if machine is None:
                raise ConfigurationDataError(
                    f"Device id {rel.device_id} refers to unknown machine id {machine_id}"
                )
            if group_id is not None and group_id != machine.group_id:
                raise ConfigurationDataError(
                    f"Device id {rel.device_id} is in group id {group_id} "
                    f"but its machine is in group id {machine.group_id}"
                )
            group_id = machine.group_id
        if group_id is not None and group_id not in self.groups_by_id:
            raise ConfigurationDataError(f"Device id {rel.device_id} refers to unknown group id {group_id}")

        current = self.relations_by_device_id[rel.device_id]
        if current.group_id is not None and group_id is not None and current.group_id != group_id:
            raise ConfigurationDataError(f"Device id {rel.device_id} is reported in more than one group")
        if current.machine_id is not None and machine_id is not None and current.machine_id != machine_id:
            raise ConfigurationDataError(f"Device id {rel.device_id} is reported in more than one machine")

        self.relations_by_device_id[rel.device_id] = DeviceRelation(
            device_id=rel.device_id,
            group_id=group_id if group_id is not None else current.group_id,
            machine_id=machine_id if machine_id is not None else current.machine_id,
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_group(self, group_id: int) -> Optional[Group]:
        return self.groups_by_id.get(group_id)

    def get_group_by_name(self, name: str) -> Optional[Group]:
        return self.groups_by_name.get(name)

    def get_machine(self, machine_id: int) -> Optional[Machine]:
        return self.machines_by_id.get(machine_id)

    def get_machine_by_name(self, name: str) -> Optional[Machine]:
        return self.machines_by_name.get(name)

    def get_device(self, device_id: int) -> Optional[DeviceStatus]:
        return self.device_status_by_id.get(device_id)

    def get_device_by_name(self, name: str) -> Optional[DeviceStatus]:
        return self.device_status_by_name.get(name)

    def get_device_info(self, device_id: int) -> Optional[DeviceInfo]:
        return self.device_info_by_id.get(device_id)

    def get_relation(self, device_id: int) -> Optional[DeviceRelation]:
        return self.relations_by_device_id.get(device_id)

    def devices_in_group(self, group_id: int) -> List[DeviceStatus]:
        """All devices in a group, including those attached to its machines, ordered by name."""
        found = [
            self.device_status_by_id[rel.device_id]
            for rel in self.relations_by_device_id.values()
            if rel.group_id == group_id
        ]
        return sorted(found, key=lambda ds: ds.name)

    def devices_in_machine(self, machine_id: int) -> List[DeviceStatus]:
        found = [
            self.device_status_by_id[rel.device_id]
            for rel in self.relations_by_device_id.values()
            if rel.machine_id == machine_id
        ]
        return sorted(found, key=lambda ds: ds.name)

    def machines_in_group(self, group_id: int) -> List[Machine]:
        return sorted(
            (m for m in self.machines_by_id.values() if m.group_id == group_id),
            key=lambda m: m.name,
        )

    def device_general_type(self, device_id: int) -> Optional[GeneralType]:
        ds = self.device_status_by_id.get(device_id)
        return ds.general_type if ds is not None else None

    def machine_for_device(self, device_id: int) -> Optional[Machine]:
        rel = self.relations_by_device_id.get(device_id)
        if rel is None or rel.machine_id is None:
            return None
        return self.machines_by_id.get(rel.machine_id)

    # ------------------------------------------------------------------
    # Notify hooks: mirror a mutation which has just been performed
    # ------------------------------------------------------------------
    def notify_group_created(self, group: Group) -> None:
        if group.name in self.groups_by_name:
            raise ConfigurationDataError(f"Group name '{group.name}' is not unique")
        self.groups_by_id[group.group_id] = group
        self.groups_by_name[group.name] = group
        logger.debug(f"Inventory: group {group.name} ({group.group_id}) created")

    def notify_group_deleted(self, group_id: int) -> None:
        """Drop a group, its machines, and release its devices."""
        group = self.groups_by_id.pop(group_id, None)
        if group is None:
            return
        self.groups_by_name.pop(group.name, None)
        for mach in self.machines_in_group(group_id):
            self.machines_by_id.pop(mach.machine_id, None)
            self.machines_by_name.pop(mach.name, None)
        for device_id, rel in list(self.relations_by_device_id.items()):
            if rel.group_id == group_id:
                self.relations_by_device_id[device_id] = DeviceRelation(device_id=device_id)
        logger.debug(f"Inventory: group {group.name} ({group_id}) deleted")

    def notify_machine_created(self, machine: Machine) -> None:
        if machine.group_id not in self.groups_by_id:
            raise ConfigurationDataError(
                f"Machine '{machine.name}' refers to unknown group id {machine.group_id}"
            )
        if machine.name in self.machines_by_name:
            raise ConfigurationDataError(f"Machine name '{machine.name}' is not unique")
        self.machines_by_id[machine.machine_id] = machine
        self.machines_by_name[machine.name] = machine
        logger.debug(f"Inventory: machine {machine.name} ({machine.machine_id}) created")

    def notify_machine_deleted(self, machine_id: int) -> None:
        """Drop a machine; its devices stay in the group."""
        machine = self.machines_by_id.pop(machine_id, None)
        if machine is None:
            return
        self.machines_by_name.pop(machine.name, None)
        for device_id, rel in list(self.relations_by_device_id.items()):
            if rel.machine_id == machine_id:
                self.relations_by_device_id[device_id] = replace(rel, machine_id=None)
        logger.debug(f"Inventory: machine {machine.name} ({machine_id}) deleted")

    def notify_device_added_to_group(self, device_id: int, group_id: int) -> None:
        self._require_device(device_id)
        if group_id not in self.groups_by_id:
            raise ConfigurationDataError(f"Unknown group id {group_id}")
        self.relations_by_device_id[device_id] = DeviceRelation(device_id=device_id, group_id=group_id)

    def notify_device_removed_from_group(self, device_id: int) -> None:
        self._require_device(device_id)
        self.relations_by_device_id[device_id] = DeviceRelation(device_id=device_id)

    def notify_device_added_to_machine(self, device_id: int, machine_id: int) -> None:
        self._require_device(device_id)
        machine = self.machines_by_id.get(machine_id)
        if machine is None:
            raise ConfigurationDataError(f"Unknown machine id {machine_id}")
        self.relations_by_device_id[device_id] = DeviceRelation(
            device_id=device_id,
            group_id=machine.group_id,
            machine_id=machine_id,
        )

    def notify_device_removed_from_machine(self, device_id: int) -> None:
        self._require_device(device_id)
        rel = self.relations_by_device_id[device_id]
        self.relations_by_device_id[device_id] = replace(rel, machine_id=None)

    def notify_description_changed(self, device_id: int, description: str) -> None:
        self._require_device(device_id)
        info = self.device_info_by_id[device_id]
        self.device_info_by_id[device_id] = replace(info, user_description=description)

    def _require_device(self, device_id: int) -> None:
        if device_id not in self.device_status_by_id:
            raise ConfigurationDataError(f"Unknown device id {device_id}")
