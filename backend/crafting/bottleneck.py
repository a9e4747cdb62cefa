from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from crafting.nodes import NodeState
from crafting.status import NodeStatus, derive_statuses


@dataclass(frozen=True)
class Bottleneck:
    node_id: int
    item_name: str
    display_name: str
    required_qty: int
    collected_qty: int
    remaining_qty: int
    blocked_ancestors: int

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "item_name": self.item_name,
            "display_name": self.display_name,
            "required_qty": self.required_qty,
            "collected_qty": self.collected_qty,
            "remaining_qty": self.remaining_qty,
            "blocked_ancestors": self.blocked_ancestors,
        }


def find_bottlenecks(nodes: Iterable[NodeState], limit: int | None = None) -> list[Bottleneck]:
    """Rank incomplete resource nodes by how many blocked ancestors they hold up.

    Counts are per node along its own path to the root; the same item in
    another branch is ranked separately. The walk stops at the first
    ancestor that is not blocked. On consistent data every ancestor of an
    incomplete resource is blocked, because each one has an incomplete
    child, so this gives the same count as walking to the root. The two
    only differ when a crafted node sits above unfinished inputs, and
    nothing above such a node is counted.
    """
    node_list = list(nodes)
    by_id = {node.id: node for node in node_list}
    statuses = derive_statuses(node_list)

    results = []
    for node in node_list:
        if statuses[node.id] is not NodeStatus.NEEDS_GATHERING:
            continue
        results.append(
            Bottleneck(
                node_id=node.id,
                item_name=node.item_name,
                display_name=node.display_name,
                required_qty=node.required_qty,
                collected_qty=node.collected_qty,
                remaining_qty=node.remaining_qty,
                blocked_ancestors=_count_blocked_ancestors(node, by_id, statuses),
            )
        )

    results.sort(
        key=lambda item: (-item.blocked_ancestors, -item.remaining_qty, item.item_name, item.node_id)
    )
    if limit is not None:
        return results[:limit]
    return results


def _count_blocked_ancestors(
    node: NodeState,
    by_id: dict[int, NodeState],
    statuses: dict[int, NodeStatus],
) -> int:
    count = 0
    visited = {node.id}
    parent_id = node.parent_id
    while parent_id is not None and parent_id not in visited:
        visited.add(parent_id)
        parent = by_id.get(parent_id)
        if parent is None or statuses[parent.id] is not NodeStatus.BLOCKED:
            break
        count += 1
        parent_id = parent.parent_id
    return count
