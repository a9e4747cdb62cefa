from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable

from crafting.nodes import NodeState
from crafting.status import derive_statuses, is_terminal


@dataclass(frozen=True)
class ProjectProgress:
    total_nodes: int
    completed_nodes: int
    total_resources: int
    completed_resources: int
    progress_pct: int

    def to_dict(self) -> dict:
        return asdict(self)


def get_progress(nodes: Iterable[NodeState]) -> ProjectProgress:
    node_list = list(nodes)
    statuses = derive_statuses(node_list)
    completed = [node for node in node_list if is_terminal(statuses[node.id])]
    resources = [node for node in node_list if node.is_resource]
    total = len(node_list)
    return ProjectProgress(
        total_nodes=total,
        completed_nodes=len(completed),
        total_resources=len(resources),
        completed_resources=sum(1 for node in completed if node.is_resource),
        progress_pct=_round_half_up(100 * len(completed) / total) if total else 0,
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
