"""
Shared plumbing for command handlers.

A command gathers what it needs from Kubernetes and the Liqid Director,
checks preconditions, and then either performs read-only work directly or
builds a Plan and runs it.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, ClassVar, List, Optional

from liqid_k8s.cluster_client import ClusterClient
from liqid_k8s.config import Settings
from liqid_k8s.constants import LIQID_SDK_LABEL, is_liqid_annotation
from liqid_k8s.errors import ConfigurationError, InternalError
from liqid_k8s.fabric_client import FabricClient, LiqidClient
from liqid_k8s.inventory import Group, Inventory
from liqid_k8s.linkage import Linkage, read_linkage
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import RemoveAllAnnotations, RemoveAnnotations

logger = logging.getLogger(__name__)

FabricClientFactory = Callable[[str], FabricClient]


class CommandType(str, Enum):
    AUTO = "auto"
    LABEL = "label"
    LINK = "link"
    NODES = "nodes"
    RESOURCES = "resources"
    UNLABEL = "unlabel"
    UNLINK = "unlink"


def _print_err(message: str) -> None:
    print(message, file=sys.stderr)


class Command(ABC):
    """
    Base class for all command handlers.

    Subclasses implement process(), which returns True on success and False
    when the command decided not to proceed (after telling the operator why).
    Configuration, data and fabric problems are raised as exceptions.
    """

    command_type: ClassVar[CommandType]

    def __init__(
        self,
        settings: Settings,
        cluster_client: Optional[ClusterClient] = None,
        fabric_client_factory: Optional[FabricClientFactory] = None,
    ) -> None:
        """
        Args:
            settings: Effective settings
            cluster_client: Pre-built Kubernetes client; built lazily when None
            fabric_client_factory: Builds a fabric client for an address;
                defaults to a LiqidClient using the configured port and timeout
        """
        self.settings = settings
        self.cluster_client = cluster_client
        self.fabric_client: Optional[FabricClient] = None
        self.linkage: Optional[Linkage] = None
        self.inventory: Optional[Inventory] = None
        self._fabric_client_factory = fabric_client_factory or self._default_fabric_client

    @property
    def force(self) -> bool:
        return self.settings.force

    @property
    def no_update(self) -> bool:
        return self.settings.no_update

    def _default_fabric_client(self, address: str) -> FabricClient:
        return LiqidClient(address, port=self.settings.fabric_port, timeout_s=float(self.settings.timeout_s))

    @abstractmethod
    def process(self) -> bool:
        """Run the command. Returns False if processing was refused."""

    def init_cluster_client(self) -> ClusterClient:
        if self.cluster_client is None:
            self.cluster_client = ClusterClient(
                proxy_url=self.settings.proxy_url,
                timeout_s=float(self.settings.timeout_s),
            )
        return self.cluster_client

    def get_linkage(self) -> bool:
        """
        Load the linkage from the cluster into self.linkage.

        Returns:
            False (after printing an error) if no linkage is configured
        """
        linkage = read_linkage(self.init_cluster_client())
        if linkage is None:
            _print_err("ERROR:No linkage configured for this Kubernetes Cluster")
            return False
        self.linkage = linkage
        logger.info(f"Linked to {linkage.address}, group {linkage.group_name}")
        return True

    def init_fabric_client(
        self,
        address: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> FabricClient:
        """
        Create the fabric client and log in when a username is known.

        Without explicit arguments the linkage supplies address and credentials.
        """
        if address is None:
            if self.linkage is None:
                raise InternalError("init_fabric_client called before the linkage was read")
            address = self.linkage.address
            username = self.linkage.username
            password = self.linkage.password

        fabric = self._fabric_client_factory(address)
        if username:
            fabric.login(LIQID_SDK_LABEL, username, password)
        self.fabric_client = fabric
        return fabric

    def get_inventory(self) -> Inventory:
        if self.fabric_client is None:
            raise InternalError("get_inventory called before the fabric client was created")
        self.inventory = Inventory.build(self.fabric_client)
        return self.inventory

    def get_linked_group(self) -> Group:
        """Return the linked group from the inventory; its absence is a configuration error."""
        if self.linkage is None or self.inventory is None:
            raise InternalError("get_linked_group called before linkage and inventory were loaded")
        group = self.inventory.get_group_by_name(self.linkage.group_name)
        if group is None:
            raise ConfigurationError(
                f"Liqid Cluster group '{self.linkage.group_name}' named in the linkage does not exist"
            )
        return group

    def check_for_existing_annotations(
        self,
        command: str,
        plan: Optional[Plan] = None,
        node_names: Optional[List[str]] = None,
        remove_all: bool = False,
    ) -> bool:
        """
        Look for Liqid annotations on worker nodes where none should exist.

        Without force, the offending nodes are listed and False is returned.
        With force, they are listed as a warning and, if a plan is given, a
        RemoveAnnotations step is added for each of them.

        Args:
            command: Command token, for the message
            plan: Plan that receives the removal steps when forced
            node_names: Restrict the check to these nodes
            remove_all: Add one RemoveAllAnnotations step instead of one step per node

        Returns:
            True if the caller may continue
        """
        cluster = self.init_cluster_client()
        annotated = []
        for node in cluster.get_nodes():
            if node_names is not None and node.name not in node_names:
                continue
            if any(is_liqid_annotation(key) for key in node.annotations):
                annotated.append(node.name)

        if not annotated:
            return True

        prefix1 = "WARNING" if self.force else "ERROR"
        prefix2 = " " * len(prefix1)
        _print_err(f"{prefix1}:The following worker nodes have Liqid Cluster-related annotations:")
        _print_err(f"{prefix2}:  {', '.join(annotated)}")
        if not self.force:
            _print_err(f"{prefix2}:{command} command will not be performed unless forced.")
            return False

        _print_err(f"{prefix2}:The nodes will be un-annotated.")
        if plan is not None and remove_all:
            plan.add_action(RemoveAllAnnotations())
        elif plan is not None:
            for name in annotated:
                plan.add_action(RemoveAnnotations(node_name=name))
        return True

    def run_plan(self, plan: Plan) -> None:
        """
        Show the plan and, unless this is a dry run, execute it.

        The command's fabric client is handed to the plan only when one of its
        actions changes the fabric, so Kubernetes-only plans skip the inventory fetch.
        """
        plan.show()
        if self.no_update:
            print("No update requested; the plan was not executed.")
            return
        fabric_client = self.fabric_client if plan.requires_fabric else None
        if plan.requires_fabric and fabric_client is None:
            raise InternalError("run_plan called for a fabric plan before the fabric client was created")
        plan.execute(fabric_client, self.init_cluster_client(), logger)

    def logout(self) -> None:
        if self.fabric_client is not None and self.fabric_client.is_logged_in():
            self.fabric_client.logout()
