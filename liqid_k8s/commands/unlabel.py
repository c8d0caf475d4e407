from __future__ import annotations

from typing import Optional

from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.errors import InternalError
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import RemoveAllAnnotations, RemoveAnnotations


class UnlabelCommand(Command):
    """Removes Liqid annotations from one worker node, or from all of them."""

    command_type = CommandType.UNLABEL

    def __init__(self, settings, node_name: Optional[str] = None, all_nodes: bool = False, **kwargs) -> None:
        super().__init__(settings, **kwargs)
        if (node_name is None) == (not all_nodes):
            raise InternalError("UnlabelCommand needs exactly one of node_name or all_nodes")
        self.node_name = node_name
        self.all_nodes = all_nodes

    def process(self) -> bool:
        self.init_cluster_client()
        plan = Plan()
        if self.all_nodes:
            plan.add_action(RemoveAllAnnotations())
        else:
            plan.add_action(RemoveAnnotations(node_name=self.node_name))
        self.run_plan(plan)
        return True
