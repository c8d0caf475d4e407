"""
Automatic allocation of a group's resources to Kubernetes worker nodes.

Compute devices are tied to worker nodes through their user description
(which must name a worker node) and to machines through their machine
attachment. All other devices of the group are then split by general type as
evenly as possible across the identified nodes. Only counts are allocated;
which physical device ends up where is left to the machine composition step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from liqid_k8s.constants import (
    GeneralType,
    K8S_ANNOTATION_MACHINE_NAME,
    create_annotation_key_for,
    create_annotation_key_for_device_type,
    has_description,
)
from liqid_k8s.inventory import Group, Inventory

logger = logging.getLogger(__name__)


@dataclass
class AllocationIssue:
    device_name: str
    message: str
    fatal: bool


@dataclass
class NodeAllocation:
    node_name: str
    machine_name: str
    counts: Dict[GeneralType, int] = field(default_factory=dict)

    def annotations(self) -> Dict[str, str]:
        """Annotation map for this node; zero counts are omitted."""
        result = {create_annotation_key_for(K8S_ANNOTATION_MACHINE_NAME): self.machine_name}
        for gen_type in GeneralType:
            count = self.counts.get(gen_type, 0)
            if count > 0:
                result[create_annotation_key_for_device_type(gen_type)] = str(count)
        return result


@dataclass
class AllocationResult:
    allocations: List[NodeAllocation] = field(default_factory=list)
    issues: List[AllocationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.fatal for issue in self.issues)


def partition_counts(device_count: int, worker_count: int) -> List[int]:
    """
    Split device_count across worker_count workers, front-loading the remainder.

    Each worker in turn receives ceil(remaining devices / remaining workers);
    the split stops early once devices run out, so trailing workers may get
    nothing. The result always has worker_count entries and sums to
    device_count.

    >>> partition_counts(4, 3)
    [2, 1, 1]
    >>> partition_counts(1, 3)
    [1, 0, 0]
    """
    if device_count < 0 or worker_count < 0:
        raise ValueError("counts must be non-negative")
    shares = [0] * worker_count
    remaining_devices = device_count
    remaining_workers = worker_count
    for index in range(worker_count):
        if remaining_devices == 0 or remaining_workers == 0:
            break
        share = -(-remaining_devices // remaining_workers)
        shares[index] = share
        remaining_devices -= share
        remaining_workers -= 1
    return shares


def allocate_equally(
    counts_by_type: Dict[GeneralType, int],
    allocations: List[NodeAllocation],
) -> None:
    """Fill in per-type counts on allocations, visiting nodes in list order."""
    for gen_type in GeneralType:
        device_count = counts_by_type.get(gen_type, 0)
        if device_count == 0:
            continue
        shares = partition_counts(device_count, len(allocations))
        for alloc, share in zip(allocations, shares):
            if share > 0:
                alloc.counts[gen_type] = share
        logger.info(f"{gen_type.value}: {device_count} devices split as {shares}")


def map_compute_to_nodes(
    inventory: Inventory,
    group: Group,
    worker_node_names: Iterable[str],
    force: bool = False,
) -> AllocationResult:
    """
    Identify the worker node and machine for every compute device in a group.

    Args:
        inventory: Liqid inventory
        group: Group whose compute devices are examined
        worker_node_names: Names of discovered Kubernetes worker nodes
        force: Downgrade every problem to a non-fatal warning

    Returns:
        An AllocationResult with one (count-less) NodeAllocation per mapped
        node, ordered by node name, plus any issues found
    """
    known_nodes = set(worker_node_names)
    result = AllocationResult()
    claimed: Dict[str, str] = {}
    by_node: Dict[str, NodeAllocation] = {}

    for ds in inventory.devices_in_group(group.group_id):
        if ds.general_type != GeneralType.cpu:
            continue

        description = inventory.get_device_info(ds.device_id).user_description
        if not has_description(description):
            result.issues.append(AllocationIssue(ds.name, f"CPU Resource '{ds.name}' has no description", not force))
            continue
        if description not in known_nodes:
            result.issues.append(AllocationIssue(
                ds.name,
                f"CPU Resource '{ds.name}' refers to '{description}' which is not a discovered worker node",
                not force,
            ))
            continue
        if description in claimed:
            result.issues.append(AllocationIssue(
                ds.name,
                f"CPU Resource '{ds.name}' refers to worker node '{description}' "
                f"which is already claimed by CPU Resource '{claimed[description]}'",
                not force,
            ))
            continue

        machine = inventory.machine_for_device(ds.device_id)
        if machine is None:
            result.issues.append(AllocationIssue(ds.name, f"CPU Resource '{ds.name}' is not attached to a machine", not force))
            continue

        claimed[description] = ds.name
        by_node[description] = NodeAllocation(node_name=description, machine_name=machine.name)

    result.allocations = [by_node[name] for name in sorted(by_node)]
    return result


def plan_allocations(
    inventory: Inventory,
    group: Group,
    worker_node_names: Iterable[str],
    force: bool = False,
) -> AllocationResult:
    """
    Produce per-node allocations for a group.

    Partitioning is skipped when fatal issues were found, or when no node
    could be mapped at all.
    """
    result = map_compute_to_nodes(inventory, group, worker_node_names, force=force)
    if result.has_errors or not result.allocations:
        return result

    counts_by_type: Dict[GeneralType, int] = {}
    for ds in inventory.devices_in_group(group.group_id):
        if ds.general_type == GeneralType.cpu:
            continue
        counts_by_type[ds.general_type] = counts_by_type.get(ds.general_type, 0) + 1

    logger.info(f"Partitioning resources among {len(result.allocations)} worker nodes")
    allocate_equally(counts_by_type, result.allocations)
    return result
