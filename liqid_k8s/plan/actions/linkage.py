from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from liqid_k8s.errors import InternalError
from liqid_k8s.linkage import Linkage, delete_linkage, write_linkage
from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.context import ExecutionContext


@dataclass
class CreateLinkage(Action):
    """Stores the fabric address, group name, and credentials in Kubernetes."""

    action_type: ClassVar[ActionType] = ActionType.CREATE_LINKAGE
    requires_fabric: ClassVar[bool] = False

    fabric_address: Optional[str] = None
    group_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("fabric_address", self.fabric_address)
        self._check_for_null("group_name", self.group_name)
        if self.password is not None and self.username is None:
            raise InternalError("CreateLinkage: password given without username")

    def perform(self, context: ExecutionContext) -> None:
        write_linkage(
            context.cluster_client,
            Linkage(
                address=self.fabric_address,
                group_name=self.group_name,
                username=self.username,
                password=self.password,
            ),
        )

    def describe(self) -> str:
        creds = f" as user {self.username}" if self.username else ""
        return (
            f"Create Linkage to Liqid Cluster at {self.fabric_address} "
            f"with Group {self.group_name}{creds}"
        )


@dataclass
class RemoveLinkage(Action):
    action_type: ClassVar[ActionType] = ActionType.REMOVE_LINKAGE
    requires_fabric: ClassVar[bool] = False

    def check_parameters(self) -> None:
        pass

    def perform(self, context: ExecutionContext) -> None:
        if not delete_linkage(context.cluster_client):
            self._inform("No linkage exists for this Kubernetes Cluster")

    def describe(self) -> str:
        return "Remove Linkage between the Kubernetes Cluster and the Liqid Cluster"
