from __future__ import annotations

from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.display import display_nodes


class NodesCommand(Command):
    command_type = CommandType.NODES

    def process(self) -> bool:
        display_nodes(self.init_cluster_client().get_nodes())
        return True
