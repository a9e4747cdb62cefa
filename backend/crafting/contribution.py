from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog

from crafting.errors import (
    DependenciesIncompleteError,
    InvalidActionError,
    InvalidNodeKindError,
    InvalidQuantityError,
    NodeAlreadyCraftedError,
    NodeNotFoundError,
)
from crafting.nodes import Enchantment, NodeState
from crafting.status import NodeStatus, derive_status
from crafting.store import ContributionAction, ContributionRecord, NodeStore

logger = structlog.get_logger(__name__)

CONTRIBUTION_ACTIONS = {ContributionAction.COLLECTED, ContributionAction.CRAFTED}


@dataclass(frozen=True)
class ContributionResult:
    node: NodeState
    status: NodeStatus
    contribution: ContributionRecord
    milestone: ContributionRecord | None = None

    def to_dict(self) -> dict:
        node = self.node.to_dict()
        node["status"] = self.status.value
        return {
            "node": node,
            "contribution": self.contribution.to_dict(),
            "milestone": self.milestone.to_dict() if self.milestone else None,
        }


def contribute(
    store: NodeStore,
    *,
    project_id: int,
    node_id: int,
    actor_id: str,
    quantity: int,
    action: str | ContributionAction,
) -> ContributionResult:
    """Apply one collect or craft action to a node.

    The node mutation, the primary contribution record and the optional
    milestone record are written in a single store transaction. Craft
    readiness is checked by the store against live child rows, never
    against anything the caller read earlier.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError("Quantity must be at least 1.")
    try:
        action = ContributionAction(action)
    except ValueError as exc:
        raise InvalidActionError(f"Unsupported action: {action}") from exc
    if action not in CONTRIBUTION_ACTIONS:
        raise InvalidActionError(f"Unsupported action: {action.value}")

    with store.transaction() as tx:
        node = tx.get_node(project_id, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)

        if action is ContributionAction.COLLECTED:
            if not node.is_resource:
                raise InvalidNodeKindError(
                    f"{node.display_name} is crafted, not collected."
                )
            previous, current = tx.add_clamped(node.id, quantity, node.required_qty)
            credited = current - previous
            reached_terminal = previous < node.required_qty <= current
        else:
            if node.is_resource:
                raise InvalidNodeKindError(
                    f"{node.display_name} is a raw resource and cannot be crafted."
                )
            if node.is_complete:
                raise NodeAlreadyCraftedError(f"{node.display_name} is already crafted.")
            if not tx.mark_crafted(node.id):
                incomplete = [child for child in tx.children(node.id) if not child.is_complete]
                logger.info(
                    "craft_rejected",
                    project_id=project_id,
                    node_id=node.id,
                    incomplete=[child.id for child in incomplete],
                )
                raise DependenciesIncompleteError(node.display_name, incomplete)
            credited = node.required_qty - node.collected_qty
            reached_terminal = True

        record = tx.append_contribution(project_id, node.id, actor_id, credited, action)
        milestone = None
        if reached_terminal:
            milestone = tx.append_contribution(
                project_id,
                node.id,
                actor_id,
                node.required_qty,
                ContributionAction.MILESTONE,
            )
        updated = tx.get_node(project_id, node.id)
        status = derive_status(updated, tx.children(node.id))

    logger.info(
        "contribution_applied",
        project_id=project_id,
        node_id=node_id,
        actor_id=actor_id,
        action=action.value,
        credited=credited,
        status=status.value,
    )
    if milestone is not None:
        logger.info("node_completed", project_id=project_id, node_id=node_id, item=node.item_name)
    return ContributionResult(
        node=updated,
        status=status,
        contribution=record,
        milestone=milestone,
    )


def update_enchantments(
    store: NodeStore,
    *,
    project_id: int,
    node_id: int,
    enchantments: Iterable[Enchantment],
) -> NodeState:
    with store.transaction() as tx:
        node = tx.get_node(project_id, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        updated = tx.set_enchantments(node.id, tuple(enchantments))
    logger.info(
        "enchantments_updated",
        project_id=project_id,
        node_id=node_id,
        enchantments=[enchantment.name for enchantment in updated.enchantments],
    )
    return updated
