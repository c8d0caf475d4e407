from liqid_k8s.commands.auto import AutoCommand
from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.commands.label import LabelCommand
from liqid_k8s.commands.link import LinkCommand
from liqid_k8s.commands.nodes import NodesCommand
from liqid_k8s.commands.resources import ResourcesCommand
from liqid_k8s.commands.unlabel import UnlabelCommand
from liqid_k8s.commands.unlink import UnlinkCommand

__all__ = [
    'AutoCommand',
    'Command',
    'CommandType',
    'LabelCommand',
    'LinkCommand',
    'NodesCommand',
    'ResourcesCommand',
    'UnlabelCommand',
    'UnlinkCommand',
]
