"""Operator-facing tables."""

from __future__ import annotations

import sys
from typing import Iterable, List, Optional, TextIO

from liqid_k8s.cluster_client import ClusterNode
from liqid_k8s.constants import is_liqid_annotation
from liqid_k8s.inventory import Group, Inventory


def _emit(lines: List[str], stream: Optional[TextIO]) -> List[str]:
    out = stream or sys.stdout
    for line in lines:
        print(line, file=out)
    return lines


def display_devices(inventory: Inventory, group: Optional[Group] = None, stream: Optional[TextIO] = None) -> List[str]:
    """List devices, either every device or those of one group."""
    lines = [""]
    if group is None:
        lines.append("All Resources:")
        lines.append("  ---TYPE---  --NAME--  ----ID----  --------VENDOR--------  -----MODEL------  "
                     "-------MACHINE--------  -------------GROUP--------------  --DESCRIPTION--")
        devices = sorted(inventory.device_status_by_id.values(), key=lambda ds: ds.name)
    else:
        lines.append(f"Resources for group '{group.name}':")
        lines.append("  ---TYPE---  --NAME--  ----ID----  --------VENDOR--------  -----MODEL------  "
                     "-------MACHINE--------  --DESCRIPTION--")
        devices = inventory.devices_in_group(group.group_id)

    for ds in devices:
        info = inventory.get_device_info(ds.device_id)
        rel = inventory.get_relation(ds.device_id)
        machine = inventory.machine_for_device(ds.device_id)
        mach_str = machine.name if machine else "<none>"
        grp_str = ""
        if group is None:
            owner = inventory.get_group(rel.group_id) if rel.group_id is not None else None
            grp_str = f"  {owner.name if owner else '<none>':<32}"
        lines.append(
            f"  {ds.device_type.value:<10}  {ds.name:<8}  0x{ds.device_id:08x}  {info.vendor:<22}  "
            f"{info.model:<16}  {mach_str:<22}{grp_str}  {info.user_description or ''}"
        )
    return _emit(lines, stream)


def display_machines(inventory: Inventory, group: Optional[Group] = None, stream: Optional[TextIO] = None) -> List[str]:
    """List machines with their attached devices."""
    lines = [""]
    if group is None:
        lines.append("All Machines:")
        lines.append("  -------------GROUP--------------  -------MACHINE--------  ----ID----  --------DEVICES---------")
        machines = sorted(inventory.machines_by_id.values(), key=lambda m: m.name)
    else:
        lines.append(f"Machines for group '{group.name}':")
        lines.append("  -------MACHINE--------  ----ID----  --------DEVICES---------")
        machines = inventory.machines_in_group(group.group_id)

    for mach in machines:
        dev_names = " ".join(ds.name for ds in inventory.devices_in_machine(mach.machine_id))
        if group is None:
            owner = inventory.get_group(mach.group_id)
            lines.append(f"  {owner.name:<32}  {mach.name:<22}  0x{mach.machine_id:08x}  {dev_names}")
        else:
            lines.append(f"  {mach.name:<22}  0x{mach.machine_id:08x}  {dev_names}")
    return _emit(lines, stream)


def display_nodes(nodes: Iterable[ClusterNode], stream: Optional[TextIO] = None) -> List[str]:
    """List worker nodes and their Liqid annotations."""
    lines = ["", "Worker Nodes:"]
    for node in nodes:
        lines.append(f"  {node.name}")
        annos = sorted((k, v) for k, v in node.annotations.items() if is_liqid_annotation(k))
        if not annos:
            lines.append("    <no Liqid annotations>")
        for key, value in annos:
            lines.append(f"    {key}={value}")
    return _emit(lines, stream)
