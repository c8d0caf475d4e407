from __future__ import annotations

import logging
import sys
from typing import Optional

from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.linkage import read_linkage
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import CreateLinkage, RemoveLinkage

logger = logging.getLogger(__name__)


class LinkCommand(Command):
    """Links the Kubernetes cluster to a group on a Liqid Cluster."""

    command_type = CommandType.LINK

    def __init__(
        self,
        settings,
        address: str,
        group_name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(settings, **kwargs)
        self.address = address
        self.group_name = group_name
        self.username = username
        self.password = password

    def process(self) -> bool:
        cluster = self.init_cluster_client()
        existing = read_linkage(cluster)
        if existing is not None and not self.force:
            print(
                f"ERROR:Linkage already exists to {existing.address} group {existing.group_name}; "
                f"use --force to replace it",
                file=sys.stderr,
            )
            return False

        logger.debug(f"Verifying group {self.group_name} on {self.address}")
        # The Director must be reachable with these credentials and must know the group.
        self.init_fabric_client(self.address, self.username, self.password)
        try:
            inventory = self.get_inventory()
            if inventory.get_group_by_name(self.group_name) is None:
                print(f"ERROR:Group '{self.group_name}' does not exist on the Liqid Cluster", file=sys.stderr)
                return False
        finally:
            self.logout()

        plan = Plan()
        if existing is not None:
            plan.add_action(RemoveLinkage())
        plan.add_action(CreateLinkage(
            fabric_address=self.address,
            group_name=self.group_name,
            username=self.username,
            password=self.password,
        ))
        self.run_plan(plan)
        return True
