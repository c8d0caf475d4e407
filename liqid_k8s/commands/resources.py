from __future__ import annotations

from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.display import display_devices, display_machines


class ResourcesCommand(Command):
    """Lists devices and machines of the linked group, or of the whole fabric."""

    command_type = CommandType.RESOURCES

    def __init__(self, settings, show_all: bool = False, **kwargs) -> None:
        super().__init__(settings, **kwargs)
        self.show_all = show_all

    def process(self) -> bool:
        if not self.get_linkage():
            return False

        self.init_fabric_client()
        try:
            inventory = self.get_inventory()
            group = None if self.show_all else self.get_linked_group()
            display_devices(inventory, group)
            display_machines(inventory, group)
        finally:
            self.logout()
        return True
