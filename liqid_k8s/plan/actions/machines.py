"""Actions which create, delete, or recompose Liqid machines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional

from liqid_k8s.constants import DeviceType
from liqid_k8s.errors import ProcessingError
from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.context import ExecutionContext


@dataclass
class CreateMachine(Action):
    """Creates a machine with the specified name, in the given group."""

    action_type: ClassVar[ActionType] = ActionType.CREATE_MACHINE

    group_name: Optional[str] = None
    machine_name: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("group_name", self.group_name)
        self._check_for_null("machine_name", self.machine_name)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        group = inventory.get_group_by_name(self.group_name)
        if group is None:
            self._inform(f"Group {self.group_name} does not exist in the Liqid Cluster")
            return
        if inventory.get_machine_by_name(self.machine_name) is not None:
            self._inform(f"Machine {self.machine_name} already exists in the Liqid Cluster")
            return

        machine = context.fabric.create_machine(group.group_id, self.machine_name)
        inventory.notify_machine_created(machine)

    def describe(self) -> str:
        return f"Create Machine {self.machine_name} in Group {self.group_name} in the Liqid Cluster"


@dataclass
class DeleteMachine(Action):
    action_type: ClassVar[ActionType] = ActionType.DELETE_MACHINE

    machine_name: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("machine_name", self.machine_name)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        machine = inventory.get_machine_by_name(self.machine_name)
        if machine is None:
            self._inform(f"Machine {self.machine_name} does not exist in the Liqid Cluster")
            return
        context.fabric.delete_machine(machine.machine_id)
        inventory.notify_machine_deleted(machine.machine_id)

    def describe(self) -> str:
        return f"Delete Machine {self.machine_name} from the Liqid Cluster"


@dataclass
class AssignToMachine(Action):
    """
    Attaches devices from the machine's group to the machine.

    A machine holds at most one compute device.
    """

    action_type: ClassVar[ActionType] = ActionType.ASSIGN_RESOURCES_TO_MACHINE

    machine_name: Optional[str] = None
    device_names: List[str] = field(default_factory=list)

    def check_parameters(self) -> None:
        self._check_for_null("machine_name", self.machine_name)
        self._check_for_empty("device_names", self.device_names)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        machine = inventory.get_machine_by_name(self.machine_name)
        if machine is None:
            self._inform(f"Machine {self.machine_name} does not exist in the Liqid Cluster")
            return

        for dev_name in self.device_names:
            ds = inventory.get_device_by_name(dev_name)
            if ds is None:
                self._inform(f"Resource {dev_name} does not exist in the Liqid Cluster")
                continue
            rel = inventory.get_relation(ds.device_id)
            if rel.machine_id == machine.machine_id:
                self._inform(f"Resource {dev_name} is already attached to machine {self.machine_name}")
                continue
            if rel.machine_id is not None:
                other = inventory.get_machine(rel.machine_id)
                raise ProcessingError(f"Resource {dev_name} is attached to machine {other.name}")
            if rel.group_id != machine.group_id:
                self._inform(f"Resource {dev_name} is not in the group of machine {self.machine_name}")
                continue
            if ds.device_type == DeviceType.compute and any(
                d.device_type == DeviceType.compute for d in inventory.devices_in_machine(machine.machine_id)
            ):
                raise ProcessingError(f"Machine {self.machine_name} already has a compute resource")

            context.logger.info(f"Attaching {dev_name} to machine {self.machine_name}")
            context.fabric.add_device_to_machine(ds.device_id, machine.machine_id)
            inventory.notify_device_added_to_machine(ds.device_id, machine.machine_id)

    def describe(self) -> str:
        return f"Assign {', '.join(self.device_names or [])} to Machine {self.machine_name}"


@dataclass
class RemoveFromMachine(Action):
    action_type: ClassVar[ActionType] = ActionType.REMOVE_RESOURCES_FROM_MACHINE

    machine_name: Optional[str] = None
    device_names: List[str] = field(default_factory=list)

    def check_parameters(self) -> None:
        self._check_for_null("machine_name", self.machine_name)
        self._check_for_empty("device_names", self.device_names)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        machine = inventory.get_machine_by_name(self.machine_name)
        if machine is None:
            self._inform(f"Machine {self.machine_name} does not exist in the Liqid Cluster")
            return

        for dev_name in self.device_names:
            ds = inventory.get_device_by_name(dev_name)
            if ds is None:
                self._inform(f"Resource {dev_name} does not exist in the Liqid Cluster")
                continue
            if inventory.get_relation(ds.device_id).machine_id != machine.machine_id:
                self._inform(f"Resource {dev_name} is not attached to machine {self.machine_name}")
                continue

            context.logger.info(f"Detaching {dev_name} from machine {self.machine_name}")
            context.fabric.remove_device_from_machine(ds.device_id, machine.machine_id)
            inventory.notify_device_removed_from_machine(ds.device_id)

    def describe(self) -> str:
        return f"Remove {', '.join(self.device_names or [])} from Machine {self.machine_name}"
