from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from liqid_k8s.cluster_client import ClusterClient
from liqid_k8s.errors import InternalError
from liqid_k8s.fabric_client import FabricClient
from liqid_k8s.inventory import Inventory


@dataclass
class ExecutionContext:
    """
    Shared state for one plan execution.

    Owned by the executing Plan and handed to each action in turn; actions
    patch the inventory after each fabric mutation.
    """
    cluster_client: ClusterClient
    fabric_client: Optional[FabricClient] = None
    inventory: Optional[Inventory] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("liqid_k8s.plan"))

    @property
    def fabric(self) -> FabricClient:
        if self.fabric_client is None:
            raise InternalError("Action requires a fabric client but none was provided")
        return self.fabric_client

    @property
    def liqid_inventory(self) -> Inventory:
        if self.inventory is None:
            raise InternalError("Action requires a Liqid inventory but none was built")
        return self.inventory
