"""
Automatic annotation of worker nodes.

Each compute device in the linked group names its worker node in its user
description and is attached to the machine backing that node. The group's
remaining resources are spread evenly over those nodes, and the result is
written as node annotations.
"""

from __future__ import annotations

import logging
import sys

from liqid_k8s.allocation import plan_allocations
from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.errors import ConfigurationError
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import AnnotateNode

logger = logging.getLogger(__name__)


class AutoCommand(Command):
    command_type = CommandType.AUTO

    def _precheck(self, plan: Plan) -> bool:
        self.init_cluster_client()
        if not self.get_linkage():
            raise ConfigurationError("No linkage exists between the Kubernetes Cluster and a Liqid Cluster.")

        self.init_fabric_client()
        # Stop on Liqid problems before looking at existing annotations.
        self.get_inventory()
        return self.check_for_existing_annotations(self.command_type.value, plan=plan)

    def process(self) -> bool:
        plan = Plan()
        try:
            if not self._precheck(plan):
                return False

            group = self.get_linked_group()
            worker_nodes = self.cluster_client.get_nodes()
            logger.debug(f"Allocating group {group.name} across {len(worker_nodes)} worker nodes")
            if not worker_nodes:
                print("ERROR:Kubernetes cluster is not reporting any worker nodes", file=sys.stderr)
                return False

            result = plan_allocations(
                self.inventory, group, [node.name for node in worker_nodes], force=self.force
            )
            for issue in result.issues:
                prefix = "ERROR" if issue.fatal else "WARNING"
                print(f"{prefix}:{issue.message}", file=sys.stderr)
            if result.has_errors:
                print("Errors prevent further processing.", file=sys.stderr)
                return False

            verb = "would" if self.no_update else "will"
            print()
            print(f"The following annotations {verb} be written:")
            for alloc in result.allocations:
                annotations = alloc.annotations()
                print(f"  For Node {alloc.node_name}:")
                for key, value in annotations.items():
                    print(f"    {key}={value}")
                plan.add_action(AnnotateNode(node_name=alloc.node_name, annotations=annotations))

            self.run_plan(plan)
            return True
        finally:
            self.logout()
