from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from crafting.nodes import NodeState, index_children
from crafting.status import NodeStatus, derive_statuses

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
HEAVY_DEMAND_THRESHOLD = 16


@dataclass(frozen=True)
class TaskSuggestion:
    node_id: int
    action: str
    item_name: str
    display_name: str
    qty: int
    priority: str
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


def suggest_tasks(nodes: Iterable[NodeState], role: str = "member") -> list[TaskSuggestion]:
    """Suggest next steps for a participant based on their role.

    ``miner`` sees gathering work, ``builder`` sees craftable nodes,
    ``planner`` sees enchantments, heavy-demand resources and partly ready
    nodes; anyone else gets a mix of gathering and crafting.
    """
    node_list = sorted(nodes, key=lambda node: (node.depth, node.id))
    statuses = derive_statuses(node_list)
    children = index_children(node_list)
    incomplete = [node for node in node_list if not node.is_complete]
    gathering = sorted(
        (node for node in incomplete if node.is_resource),
        key=lambda node: -node.remaining_qty,
    )
    craftable = [node for node in incomplete if statuses[node.id] is NodeStatus.CRAFTABLE]

    role_key = (role or "member").strip().lower()
    if role_key == "miner":
        tasks = [_collect_task(node) for node in gathering[:10]]
    elif role_key == "builder":
        tasks = [_craft_task(node) for node in craftable[:8]]
    elif role_key == "planner":
        tasks = _planner_tasks(incomplete, gathering, children)
    else:
        tasks = [_collect_task(node, reason_prefix="Need") for node in gathering[:5]]
        tasks.extend(_craft_task(node) for node in craftable[:4])

    return sorted(tasks, key=lambda task: PRIORITY_ORDER[task.priority])


def _collect_task(node: NodeState, reason_prefix: str = "Collect") -> TaskSuggestion:
    remaining = node.remaining_qty
    if remaining > 32:
        priority = "high"
    elif remaining > 8:
        priority = "medium"
    else:
        priority = "low"
    return TaskSuggestion(
        node_id=node.id,
        action="collect",
        item_name=node.item_name,
        display_name=node.display_name,
        qty=remaining,
        priority=priority,
        reason=f"{reason_prefix} {remaining} more {node.display_name}",
    )


def _craft_task(node: NodeState) -> TaskSuggestion:
    if node.depth == 0:
        priority = "high"
    elif node.depth <= 2:
        priority = "medium"
    else:
        priority = "low"
    return TaskSuggestion(
        node_id=node.id,
        action="craft",
        item_name=node.item_name,
        display_name=node.display_name,
        qty=node.remaining_qty,
        priority=priority,
        reason=f"All ingredients ready, craft {node.remaining_qty}x {node.display_name}",
    )


def _planner_tasks(
    incomplete: list[NodeState],
    gathering: list[NodeState],
    children: dict[int | None, list[NodeState]],
) -> list[TaskSuggestion]:
    tasks = []
    enchanted = [node for node in incomplete if node.enchantments]
    for node in enchanted[:3]:
        labels = ", ".join(e.name.replace("_", " ") for e in node.enchantments)
        tasks.append(
            TaskSuggestion(
                node_id=node.id,
                action="plan",
                item_name=node.item_name,
                display_name=node.display_name,
                qty=node.remaining_qty,
                priority="medium",
                reason=f"Needs enchantments: {labels}",
            )
        )

    heavy = [node for node in gathering if node.remaining_qty > HEAVY_DEMAND_THRESHOLD]
    for node in heavy[:5]:
        tasks.append(
            TaskSuggestion(
                node_id=node.id,
                action="review",
                item_name=node.item_name,
                display_name=node.display_name,
                qty=node.remaining_qty,
                priority="low",
                reason=f"High-demand resource: {node.remaining_qty} needed",
            )
        )

    partial = []
    for node in incomplete:
        kids = children.get(node.id, [])
        if node.is_resource or not kids:
            continue
        done = sum(1 for child in kids if child.is_complete)
        if 0 < done < len(kids):
            partial.append((node, done, len(kids)))
    for node, done, total in partial[:4]:
        tasks.append(
            TaskSuggestion(
                node_id=node.id,
                action="review",
                item_name=node.item_name,
                display_name=node.display_name,
                qty=node.remaining_qty,
                priority="medium",
                reason=f"{done}/{total} ingredients ready, coordinate the rest",
            )
        )
    return tasks
