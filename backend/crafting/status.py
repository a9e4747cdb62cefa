from __future__ import annotations

from enum import Enum
from typing import Iterable

from crafting.nodes import NodeState, index_children


class NodeStatus(str, Enum):
    NEEDS_GATHERING = "needs_gathering"
    GATHERED = "gathered"
    BLOCKED = "blocked"
    CRAFTABLE = "craftable"
    CRAFTED = "crafted"


TERMINAL_STATUSES = {NodeStatus.GATHERED, NodeStatus.CRAFTED}


def derive_status(node: NodeState, children: Iterable[NodeState] = ()) -> NodeStatus:
    """Status is computed from stored quantities and the direct children only."""
    if node.is_resource:
        return NodeStatus.GATHERED if node.is_complete else NodeStatus.NEEDS_GATHERING
    if node.is_complete:
        return NodeStatus.CRAFTED
    if all(child.is_complete for child in children):
        return NodeStatus.CRAFTABLE
    return NodeStatus.BLOCKED


def is_terminal(status: NodeStatus) -> bool:
    return status in TERMINAL_STATUSES


def derive_statuses(nodes: Iterable[NodeState]) -> dict[int, NodeStatus]:
    node_list = list(nodes)
    children = index_children(node_list)
    return {node.id: derive_status(node, children.get(node.id, ())) for node in node_list}
