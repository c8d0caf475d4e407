from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, TYPE_CHECKING

from liqid_k8s.errors import InternalError

if TYPE_CHECKING:
    from liqid_k8s.plan.context import ExecutionContext

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    ANNOTATE_NODE = "annotate_node"
    CLEAR_CONFIGURATION = "clear_configuration"
    CREATE_GROUP = "create_group"
    CREATE_LINKAGE = "create_linkage"
    DELETE_GROUP = "delete_group"
    CREATE_MACHINE = "create_machine"
    DELETE_MACHINE = "delete_machine"
    ASSIGN_RESOURCES_TO_GROUP = "assign_resources_to_group"
    ASSIGN_RESOURCES_TO_MACHINE = "assign_resources_to_machine"
    REMOVE_ALL_ANNOTATIONS = "remove_all_annotations"
    REMOVE_ANNOTATIONS = "remove_annotations"
    REMOVE_LINKAGE = "remove_linkage"
    REMOVE_RESOURCES_FROM_GROUP = "remove_resources_from_group"
    REMOVE_RESOURCES_FROM_MACHINE = "remove_resources_from_machine"
    SET_USER_DESCRIPTION = "set_user_description"


class Action(ABC):
    """
    One step of a Plan.

    Subclasses are dataclasses carrying only their own parameters. Parameters
    default to None so that a structurally incomplete action can be built and
    then rejected by check_parameters() before anything in the plan runs.
    """

    action_type: ClassVar[ActionType]
    requires_fabric: ClassVar[bool] = True

    @abstractmethod
    def check_parameters(self) -> None:
        """Raise InternalError if a required parameter is missing or malformed."""
        raise NotImplementedError

    @abstractmethod
    def perform(self, context: "ExecutionContext") -> None:
        """Apply the action and patch the context's inventory accordingly."""
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:
        """One-line summary for plan display. Must not perform I/O."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()

    def _check_for_null(self, name: str, value: Any) -> None:
        if value is None:
            raise InternalError(f"{type(self).__name__}: required parameter {name} is not set")

    def _check_for_empty(self, name: str, value: Any) -> None:
        self._check_for_null(name, value)
        if len(value) == 0:
            raise InternalError(f"{type(self).__name__}: parameter {name} is empty")

    @staticmethod
    def _inform(message: str) -> None:
        """Report an already-in-desired-state condition to the operator."""
        print(f"INFO:{message}")
        logger.info(message)
