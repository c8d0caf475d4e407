from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.context import ExecutionContext


@dataclass
class SetUserDescription(Action):
    """Sets (or, given an empty string, clears) a device's user description."""

    action_type: ClassVar[ActionType] = ActionType.SET_USER_DESCRIPTION

    device_name: Optional[str] = None
    description: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("device_name", self.device_name)
        self._check_for_null("description", self.description)

    def perform(self, context: ExecutionContext) -> None:
        inventory = context.liqid_inventory
        ds = inventory.get_device_by_name(self.device_name)
        if ds is None:
            self._inform(f"Resource {self.device_name} does not exist in the Liqid Cluster")
            return
        context.fabric.set_user_description(ds.device_id, self.description)
        inventory.notify_description_changed(ds.device_id, self.description)

    def describe(self) -> str:
        return f"Set User Description for Resource {self.device_name} to '{self.description}'"
