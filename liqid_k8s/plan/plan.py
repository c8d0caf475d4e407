"""
Ordered, validated execution of plan actions.

A Plan runs exactly once:

    building -> validated -> executing -> completed

A failure while validating or executing moves the plan to failed instead.

Every action is validated before any action is performed. Actions then run
strictly in insertion order against a single ExecutionContext; the first
failure stops the run and nothing already applied is rolled back.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import List, Optional, TextIO, Tuple

from liqid_k8s.cluster_client import ClusterClient
from liqid_k8s.errors import InternalError, PlanExecutionError
from liqid_k8s.fabric_client import FabricClient
from liqid_k8s.inventory import Inventory
from liqid_k8s.plan.actions.base import Action
from liqid_k8s.plan.context import ExecutionContext

logger = logging.getLogger(__name__)


class PlanState(str, Enum):
    building = "building"
    validated = "validated"
    executing = "executing"
    completed = "completed"
    failed = "failed"


class Plan:
    def __init__(self) -> None:
        self._actions: List[Action] = []
        self.state = PlanState.building
        self.completed_steps = 0

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def actions(self) -> Tuple[Action, ...]:
        return tuple(self._actions)

    @property
    def is_empty(self) -> bool:
        return not self._actions

    @property
    def requires_fabric(self) -> bool:
        return any(action.requires_fabric for action in self._actions)

    def add_action(self, action: Action) -> "Plan":
        """Append an action. Returns the plan so that calls can be chained."""
        if self.state != PlanState.building:
            raise InternalError(f"Cannot add an action to a plan in state {self.state.value}")
        self._actions.append(action)
        return self

    def _validate(self, fabric_client: Optional[FabricClient]) -> None:
        for action in self._actions:
            action.check_parameters()
            if action.requires_fabric and fabric_client is None:
                raise InternalError(f"{type(action).__name__} requires a fabric client")

    def execute(
        self,
        fabric_client: Optional[FabricClient],
        cluster_client: ClusterClient,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """
        Validate and then perform every action in order.

        Args:
            fabric_client: Fabric client; may be None if no action needs the fabric
            cluster_client: Kubernetes client
            log: Logger handed to the actions; defaults to this module's logger

        Raises:
            InternalError: If the plan already ran or an action is malformed;
                in that case no action has been performed
            PlanExecutionError: If an action fails; earlier actions stay applied
        """
        if self.state != PlanState.building:
            raise InternalError(f"Cannot execute a plan in state {self.state.value}")

        try:
            self._validate(fabric_client)
        except InternalError:
            self.state = PlanState.failed
            raise
        self.state = PlanState.validated

        self.state = PlanState.executing
        try:
            inventory = Inventory.build(fabric_client) if fabric_client is not None else None
        except Exception:
            self.state = PlanState.failed
            raise

        context = ExecutionContext(
            cluster_client=cluster_client,
            fabric_client=fabric_client,
            inventory=inventory,
            logger=log or logger,
        )

        for step, action in enumerate(self._actions, start=1):
            print(f"---| Executing Step {step}: {action.describe()}...")
            context.logger.info(f"Step {step}: {action.describe()}")
            try:
                action.perform(context)
            except Exception as e:
                self.state = PlanState.failed
                context.logger.error(f"Step {step} failed: {e}")
                raise PlanExecutionError(step, action, e) from e
            self.completed_steps = step

        self.state = PlanState.completed
        context.logger.info(f"Plan completed: {len(self._actions)} steps")

    def show(self, stream: Optional[TextIO] = None) -> List[str]:
        """Print the numbered plan without executing it. Returns the printed lines."""
        lines = ["", "Plan----------------------------------"]
        if not self._actions:
            lines.append("Nothing to be done")
        else:
            for step, action in enumerate(self._actions, start=1):
                lines.append(f"| Step {step}: {action.describe()}")
        lines.append("--------------------------------------")

        out = stream or sys.stdout
        for line in lines:
            print(line, file=out)
        return lines
