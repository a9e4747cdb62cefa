from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import ContextManager, Iterator, Protocol, Sequence

from crafting.nodes import Enchantment, NodeDraft, NodeState


class ContributionAction(str, Enum):
    COLLECTED = "collected"
    CRAFTED = "crafted"
    MILESTONE = "milestone"
    SAVED = "saved"
    RESTORED = "restored"


@dataclass(frozen=True)
class ContributionRecord:
    id: int
    project_id: int
    node_id: int
    user_id: str
    quantity: int
    action: ContributionAction
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "node_id": self.node_id,
            "user_id": self.user_id,
            "quantity": self.quantity,
            "action": self.action.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class NodeTransaction(Protocol):
    """Operations that must run inside one store transaction.

    ``get_node`` locks the row it returns until the transaction ends.
    ``add_clamped`` and ``mark_crafted`` are atomic per node; ``mark_crafted``
    re-reads the live children and refuses unless every one is complete.
    """

    def get_node(self, project_id: int, node_id: int) -> NodeState | None:
        ...

    def children(self, node_id: int) -> list[NodeState]:
        ...

    def add_clamped(self, node_id: int, delta: int, cap: int) -> tuple[int, int]:
        ...

    def mark_crafted(self, node_id: int) -> bool:
        ...

    def set_enchantments(
        self, node_id: int, enchantments: Sequence[Enchantment]
    ) -> NodeState:
        ...

    def replace_all(self, project_id: int, nodes: Sequence[NodeState]) -> list[NodeState]:
        ...

    def append_contribution(
        self,
        project_id: int,
        node_id: int,
        user_id: str,
        quantity: int,
        action: ContributionAction,
    ) -> ContributionRecord:
        ...


class NodeStore(Protocol):
    def create_nodes(self, project_id: int, drafts: Sequence[NodeDraft]) -> list[NodeState]:
        ...

    def list_nodes(self, project_id: int) -> list[NodeState]:
        ...

    def list_contributions(self, project_id: int) -> list[ContributionRecord]:
        ...

    def transaction(self) -> ContextManager[NodeTransaction]:
        ...


def clamp_add(previous: int, delta: int, cap: int) -> int:
    if previous >= cap:
        return previous
    return min(cap, previous + delta)


class InMemoryNodeStore:
    """Thread-safe store keeping every project in process memory.

    A transaction holds the store lock for its whole duration and works on a
    private copy that replaces the live state only when the block exits
    cleanly.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[int, NodeState] = {}
        self._contributions: list[ContributionRecord] = []
        self._next_node_id = 1
        self._next_contribution_id = 1

    def create_nodes(self, project_id: int, drafts: Sequence[NodeDraft]) -> list[NodeState]:
        with self._lock:
            ids: dict[int, int] = {}
            created = []
            for draft in drafts:
                node = NodeState(
                    id=self._next_node_id,
                    project_id=project_id,
                    parent_id=ids[draft.parent_key] if draft.parent_key is not None else None,
                    item_name=draft.item_name,
                    display_name=draft.display_name,
                    required_qty=draft.required_qty,
                    collected_qty=0,
                    is_resource=draft.is_resource,
                    depth=draft.depth,
                    enchantments=draft.enchantments,
                    variant=draft.variant,
                )
                self._next_node_id += 1
                ids[draft.key] = node.id
                self._nodes[node.id] = node
                created.append(node)
            return created

    def list_nodes(self, project_id: int) -> list[NodeState]:
        with self._lock:
            nodes = [node for node in self._nodes.values() if node.project_id == project_id]
        return sorted(nodes, key=lambda node: node.id)

    def list_contributions(self, project_id: int) -> list[ContributionRecord]:
        with self._lock:
            records = [c for c in self._contributions if c.project_id == project_id]
        return sorted(records, key=lambda record: record.id, reverse=True)

    @contextmanager
    def transaction(self) -> Iterator["_InMemoryTransaction"]:
        with self._lock:
            tx = _InMemoryTransaction(self)
            yield tx
            self._nodes = tx.nodes
            self._contributions.extend(tx.contributions)
            self._next_node_id = max(self._next_node_id, tx.next_node_id)
            self._next_contribution_id = tx.next_contribution_id


class _InMemoryTransaction:
    def __init__(self, store: InMemoryNodeStore) -> None:
        self.nodes = dict(store._nodes)
        self.contributions: list[ContributionRecord] = []
        self.next_node_id = store._next_node_id
        self.next_contribution_id = store._next_contribution_id

    def get_node(self, project_id: int, node_id: int) -> NodeState | None:
        node = self.nodes.get(node_id)
        if node is None or node.project_id != project_id:
            return None
        return node

    def children(self, node_id: int) -> list[NodeState]:
        found = [node for node in self.nodes.values() if node.parent_id == node_id]
        return sorted(found, key=lambda node: node.id)

    def add_clamped(self, node_id: int, delta: int, cap: int) -> tuple[int, int]:
        node = self.nodes[node_id]
        previous = node.collected_qty
        current = clamp_add(previous, delta, cap)
        self.nodes[node_id] = node.with_collected(current)
        return previous, current

    def mark_crafted(self, node_id: int) -> bool:
        node = self.nodes[node_id]
        if node.is_complete:
            return False
        if not all(child.is_complete for child in self.children(node_id)):
            return False
        self.nodes[node_id] = node.with_collected(node.required_qty)
        return True

    def set_enchantments(self, node_id: int, enchantments: Sequence[Enchantment]) -> NodeState:
        node = replace(self.nodes[node_id], enchantments=tuple(enchantments))
        self.nodes[node_id] = node
        return node

    def replace_all(self, project_id: int, nodes: Sequence[NodeState]) -> list[NodeState]:
        self.nodes = {
            node_id: node
            for node_id, node in self.nodes.items()
            if node.project_id != project_id
        }
        restored = []
        for node in sorted(nodes, key=lambda item: (item.depth, item.id)):
            node = replace(node, project_id=project_id)
            self.nodes[node.id] = node
            self.next_node_id = max(self.next_node_id, node.id + 1)
            restored.append(node)
        return restored

    def append_contribution(
        self,
        project_id: int,
        node_id: int,
        user_id: str,
        quantity: int,
        action: ContributionAction,
    ) -> ContributionRecord:
        record = ContributionRecord(
            id=self.next_contribution_id,
            project_id=project_id,
            node_id=node_id,
            user_id=user_id,
            quantity=quantity,
            action=ContributionAction(action),
            created_at=datetime.now(timezone.utc),
        )
        self.next_contribution_id += 1
        self.contributions.append(record)
        return record
