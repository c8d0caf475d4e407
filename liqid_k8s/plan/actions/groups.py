"""Actions which create, delete, or repopulate Liqid groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional

from liqid_k8s.errors import ProcessingError
from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.context import ExecutionContext


@dataclass
class CreateGroup(Action):
    action_type: ClassVar[ActionType] = ActionType.CREATE_GROUP

    group_name: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("group_name", self.group_name)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        if inventory.get_group_by_name(self.group_name) is not None:
            self._inform(f"Group {self.group_name} already exists in the Liqid Cluster")
            return
        group = context.fabric.create_group(self.group_name)
        inventory.notify_group_created(group)

    def describe(self) -> str:
        return f"Create Group {self.group_name} in the Liqid Cluster"


@dataclass
class DeleteGroup(Action):
    action_type: ClassVar[ActionType] = ActionType.DELETE_GROUP

    group_name: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("group_name", self.group_name)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        group = inventory.get_group_by_name(self.group_name)
        if group is None:
            self._inform(f"Group {self.group_name} does not exist in the Liqid Cluster")
            return
        context.fabric.delete_group(group.group_id)
        inventory.notify_group_deleted(group.group_id)

    def describe(self) -> str:
        return f"Delete Group {self.group_name} from the Liqid Cluster"


@dataclass
class AssignToGroup(Action):
    """Moves free devices into a group."""

    action_type: ClassVar[ActionType] = ActionType.ASSIGN_RESOURCES_TO_GROUP

    group_name: Optional[str] = None
    device_names: List[str] = field(default_factory=list)

    def check_parameters(self) -> None:
        self._check_for_null("group_name", self.group_name)
        self._check_for_empty("device_names", self.device_names)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        group = inventory.get_group_by_name(self.group_name)
        if group is None:
            self._inform(f"Group {self.group_name} does not exist in the Liqid Cluster")
            return

        for dev_name in self.device_names:
            ds = inventory.get_device_by_name(dev_name)
            if ds is None:
                self._inform(f"Resource {dev_name} does not exist in the Liqid Cluster")
                continue
            rel = inventory.get_relation(ds.device_id)
            if rel.group_id == group.group_id:
                self._inform(f"Resource {dev_name} is already in group {self.group_name}")
                continue
            if rel.group_id is not None:
                other = inventory.get_group(rel.group_id)
                raise ProcessingError(f"Resource {dev_name} belongs to group {other.name}")

            context.logger.info(f"Adding {dev_name} to group {self.group_name}")
            context.fabric.add_device_to_group(ds.device_id, group.group_id)
            inventory.notify_device_added_to_group(ds.device_id, group.group_id)

    def describe(self) -> str:
        return f"Assign {', '.join(self.device_names or [])} to Group {self.group_name}"


@dataclass
class RemoveFromGroup(Action):
    """Releases devices from a group, detaching them from any machine first."""

    action_type: ClassVar[ActionType] = ActionType.REMOVE_RESOURCES_FROM_GROUP

    group_name: Optional[str] = None
    device_names: List[str] = field(default_factory=list)

    def check_parameters(self) -> None:
        self._check_for_null("group_name", self.group_name)
        self._check_for_empty("device_names", self.device_names)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        group = inventory.get_group_by_name(self.group_name)
        if group is None:
            self._inform(f"Group {self.group_name} does not exist in the Liqid Cluster")
            return

        for dev_name in self.device_names:
            ds = inventory.get_device_by_name(dev_name)
            if ds is None:
                self._inform(f"Resource {dev_name} does not exist in the Liqid Cluster")
                continue
            rel = inventory.get_relation(ds.device_id)
            if rel.group_id != group.group_id:
                self._inform(f"Resource {dev_name} is not in group {self.group_name}")
                continue

            if rel.machine_id is not None:
                context.logger.info(f"Detaching {dev_name} from machine id {rel.machine_id}")
                context.fabric.remove_device_from_machine(ds.device_id, rel.machine_id)
                inventory.notify_device_removed_from_machine(ds.device_id)

            context.logger.info(f"Removing {dev_name} from group {self.group_name}")
            context.fabric.remove_device_from_group(ds.device_id, group.group_id)
            inventory.notify_device_removed_from_group(ds.device_id)

    def describe(self) -> str:
        return f"Remove {', '.join(self.device_names or [])} from Group {self.group_name}"


@dataclass
class ClearConfiguration(Action):
    """Deletes every machine and then every group in the Liqid Cluster."""

    action_type: ClassVar[ActionType] = ActionType.CLEAR_CONFIGURATION

    def check_parameters(self) -> None:
        pass

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        for machine in sorted(inventory.machines_by_id.values(), key=lambda m: m.name):
            context.logger.info(f"Deleting machine {machine.name}")
            context.fabric.delete_machine(machine.machine_id)
            inventory.notify_machine_deleted(machine.machine_id)
        for group in sorted(inventory.groups_by_id.values(), key=lambda g: g.name):
            context.logger.info(f"Deleting group {group.name}")
            context.fabric.delete_group(group.group_id)
            inventory.notify_group_deleted(group.group_id)

    def describe(self) -> str:
        return "Clear all Groups and Machines from the Liqid Cluster"
