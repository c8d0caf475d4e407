"""Actions which write or clear Liqid annotations on Kubernetes worker nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict, Optional

from liqid_k8s.constants import is_liqid_annotation
from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.context import ExecutionContext


def _strip_liqid_annotations(context: ExecutionContext, node_name: str) -> bool:
    annotations = context.cluster_client.get_annotations_for_node(node_name)
    removals: Dict[str, Optional[str]] = {
        key: None for key in annotations if is_liqid_annotation(key)
    }
    if not removals:
        return False
    print(f"Removing annotations for worker '{node_name}'...")
    context.cluster_client.update_annotations_for_node(node_name, removals)
    return True


@dataclass
class AnnotateNode(Action):
    """Writes fully-qualified annotation keys onto one worker node."""

    action_type: ClassVar[ActionType] = ActionType.ANNOTATE_NODE
    requires_fabric: ClassVar[bool] = False

    node_name: Optional[str] = None
    annotations: Dict[str, str] = field(default_factory=dict)

    def check_parameters(self) -> None:
        self._check_for_null("node_name", self.node_name)
        self._check_for_empty("annotations", self.annotations)
        for key, value in self.annotations.items():
            self._check_for_null(f"annotations[{key}]", value)

    def perform(self, context: ExecutionContext) -> None:
        context.logger.info(f"Annotating node {self.node_name} with {self.annotations}")
        context.cluster_client.update_annotations_for_node(self.node_name, dict(self.annotations))

    def describe(self) -> str:
        pairs = ", ".join(f"{k}={v}" for k, v in sorted((self.annotations or {}).items()))
        return f"Annotate Worker Node {self.node_name} with {pairs}"


@dataclass
class RemoveAnnotations(Action):
    action_type: ClassVar[ActionType] = ActionType.REMOVE_ANNOTATIONS
    requires_fabric: ClassVar[bool] = False

    node_name: Optional[str] = None

    def check_parameters(self) -> None:
        self._check_for_null("node_name", self.node_name)

    def perform(self, context: ExecutionContext) -> None:
        if not _strip_liqid_annotations(context, self.node_name):
            self._inform(f"Worker Node {self.node_name} has no Liqid annotations")

    def describe(self) -> str:
        return f"Remove Liqid annotations from Worker Node {self.node_name}"


@dataclass
class RemoveAllAnnotations(Action):
    action_type: ClassVar[ActionType] = ActionType.REMOVE_ALL_ANNOTATIONS
    requires_fabric: ClassVar[bool] = False

    def check_parameters(self) -> None:
        pass

    def perform(self, context: ExecutionContext) -> None:
        for node in context.cluster_client.get_nodes(include_control_plane=True):
            _strip_liqid_annotations(context, node.name)

    def describe(self) -> str:
        return "Remove Liqid annotations from all Worker Nodes"
