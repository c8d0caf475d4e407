"""Plan actions, one class per ActionType."""

from liqid_k8s.plan.actions.annotations import AnnotateNode, RemoveAllAnnotations, RemoveAnnotations
from liqid_k8s.plan.actions.base import Action, ActionType
from liqid_k8s.plan.actions.devices import SetUserDescription
from liqid_k8s.plan.actions.groups import (
    AssignToGroup,
    ClearConfiguration,
    CreateGroup,
    DeleteGroup,
    RemoveFromGroup,
)
from liqid_k8s.plan.actions.linkage import CreateLinkage, RemoveLinkage
from liqid_k8s.plan.actions.machines import (
    AssignToMachine,
    CreateMachine,
    DeleteMachine,
    RemoveFromMachine,
)

__all__ = [
    'Action',
    'ActionType',
    'AnnotateNode',
    'AssignToGroup',
    'AssignToMachine',
    'ClearConfiguration',
    'CreateGroup',
    'CreateLinkage',
    'CreateMachine',
    'DeleteGroup',
    'DeleteMachine',
    'RemoveAllAnnotations',
    'RemoveAnnotations',
    'RemoveFromGroup',
    'RemoveFromMachine',
    'RemoveLinkage',
    'SetUserDescription',
]
