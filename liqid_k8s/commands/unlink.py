from __future__ import annotations

from liqid_k8s.commands.base import Command, CommandType
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import RemoveLinkage


class UnlinkCommand(Command):
    """Removes the linkage, and with --force any Liqid annotations as well."""

    command_type = CommandType.UNLINK

    def process(self) -> bool:
        if not self.get_linkage():
            return False

        plan = Plan()
        if not self.check_for_existing_annotations(self.command_type.value, plan=plan, remove_all=True):
            return False
        plan.add_action(RemoveLinkage())
        self.run_plan(plan)
        return True
