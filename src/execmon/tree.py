"""Process tree snapshots."""

from collections.abc import Callable, Iterable

import psutil
import structlog

from execmon.models import ProcessNode, ProcessRecord
from execmon.proc_info import read_process_records

log = structlog.get_logger(__name__)

# The scheduler/swapper pseudo-process; never shown
UNIVERSAL_ROOT_PID = 0


def _by_pid(node: ProcessNode) -> int:
    return node.pid


def build_forest(records: Iterable[ProcessRecord]) -> list[ProcessNode]:
    """
    Link process records into a parent/child forest.

    A node whose parent is present becomes that parent's child. Nodes whose
    parent is missing, is pid 0, or is the node itself are roots. Pid 0 never
    appears. Roots and children are ordered by pid.
    """
    nodes: dict[int, ProcessNode] = {}
    for record in records:
        if record.pid == UNIVERSAL_ROOT_PID:
            continue
        nodes[record.pid] = ProcessNode(
            pid=record.pid,
            parent_pid=record.parent_pid,
            command_name=record.command_name,
        )

    roots: list[ProcessNode] = []
    for node in nodes.values():
        parent = nodes.get(node.parent_pid)
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)

    for node in nodes.values():
        node.children.sort(key=_by_pid)
    roots.sort(key=_by_pid)
    return roots


def take_snapshot(
    reader: Callable[[], list[ProcessRecord]] = read_process_records,
) -> list[ProcessNode]:
    """
    Build a fresh forest of all live processes.

    Returns an empty forest if the process list cannot be read at all.
    """
    try:
        records = reader()
    except (OSError, psutil.Error) as exc:
        log.warning("snapshot_failed", error=str(exc))
        return []

    forest = build_forest(records)
    log.debug("snapshot_built", processes=len(records), roots=len(forest))
    return forest


def count_nodes(forest: Iterable[ProcessNode]) -> int:
    """Total number of nodes in a forest."""
    return sum(1 + count_nodes(node.children) for node in forest)
