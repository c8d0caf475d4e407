from __future__ import annotations

import logging
import sys
from typing import Dict, Optional

from liqid_k8s.allocation import NodeAllocation
from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.constants import GeneralType
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import AnnotateNode

logger = logging.getLogger(__name__)


class LabelCommand(Command):
    """Annotates one worker node with a machine name and resource counts."""

    command_type = CommandType.LABEL

    def __init__(
        self,
        settings,
        node_name: str,
        machine_name: str,
        counts: Optional[Dict[GeneralType, int]] = None,
        **kwargs,
    ) -> None:
        super().__init__(settings, **kwargs)
        self.node_name = node_name
        self.machine_name = machine_name
        self.counts = {k: v for k, v in (counts or {}).items() if v is not None}

    def _check_node(self) -> bool:
        names = [node.name for node in self.init_cluster_client().get_nodes()]
        if self.node_name not in names:
            print(f"ERROR:Worker node '{self.node_name}' does not exist", file=sys.stderr)
            return False
        return True

    def _check_counts(self, group) -> bool:
        available: Dict[GeneralType, int] = {}
        for ds in self.inventory.devices_in_group(group.group_id):
            available[ds.general_type] = available.get(ds.general_type, 0) + 1

        ok = True
        for gen_type, requested in self.counts.items():
            if gen_type == GeneralType.cpu:
                print("ERROR:CPU resources cannot be requested by count", file=sys.stderr)
                ok = False
            elif requested < 0:
                print(f"ERROR:Negative {gen_type.value} count {requested}", file=sys.stderr)
                ok = False
            elif requested > available.get(gen_type, 0):
                print(
                    f"ERROR:Requested {requested} {gen_type.value} resources but group "
                    f"'{group.name}' has only {available.get(gen_type, 0)}",
                    file=sys.stderr,
                )
                ok = False
        return ok

    def process(self) -> bool:
        if not self.get_linkage():
            return False
        if not self._check_node():
            return False

        self.init_fabric_client()
        try:
            self.get_inventory()
            group = self.get_linked_group()

            machine = self.inventory.get_machine_by_name(self.machine_name)
            if machine is None or machine.group_id != group.group_id:
                print(
                    f"ERROR:Machine '{self.machine_name}' does not exist in group '{group.name}'",
                    file=sys.stderr,
                )
                return False
            if not self._check_counts(group):
                return False

            plan = Plan()
            if not self.check_for_existing_annotations(
                self.command_type.value, plan=plan, node_names=[self.node_name]
            ):
                return False

            logger.debug(f"Labelling {self.node_name} for machine {self.machine_name}: {self.counts}")
            allocation = NodeAllocation(self.node_name, self.machine_name, dict(self.counts))
            plan.add_action(AnnotateNode(node_name=self.node_name, annotations=allocation.annotations()))
            self.run_plan(plan)
            return True
        finally:
            self.logout()
