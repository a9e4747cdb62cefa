from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

import structlog

from crafting.nodes import NodeState, parse_enchantments
from crafting.store import ContributionAction, ContributionRecord, NodeStore, NodeTransaction

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RestoreResult:
    version: int
    nodes: list[NodeState]
    contribution: ContributionRecord | None


def serialize_nodes(nodes: Iterable[NodeState]) -> dict:
    return {"nodes": [node.to_dict() for node in nodes]}


def deserialize_nodes(payload: Any, project_id: int) -> list[NodeState]:
    """Read nodes back from a stored snapshot.

    Accepts the ``{"nodes": [...]}`` shape as well as a bare list of nodes.
    """
    if isinstance(payload, dict):
        raw_nodes = payload.get("nodes") or []
    elif isinstance(payload, list):
        raw_nodes = payload
    else:
        raw_nodes = []

    nodes = []
    for raw in raw_nodes:
        if not isinstance(raw, dict):
            continue
        enchantments = raw.get("enchantments")
        if isinstance(enchantments, str):
            enchantments = json.loads(enchantments)
        nodes.append(
            NodeState(
                id=int(raw["id"]),
                project_id=project_id,
                parent_id=int(raw["parent_id"]) if raw.get("parent_id") is not None else None,
                item_name=str(raw["item_name"]),
                display_name=str(raw.get("display_name") or raw["item_name"]),
                required_qty=int(raw["required_qty"]),
                collected_qty=int(raw.get("collected_qty") or 0),
                is_resource=bool(raw.get("is_resource")),
                depth=int(raw.get("depth") or 0),
                enchantments=parse_enchantments(enchantments),
                variant=raw.get("variant"),
            )
        )
    return nodes


def _first_root(nodes: Iterable[NodeState]) -> NodeState | None:
    roots = [node for node in nodes if node.parent_id is None]
    return min(roots, key=lambda node: node.id) if roots else None


def record_saved(
    tx: NodeTransaction,
    project_id: int,
    nodes: Iterable[NodeState],
    version: int,
    actor_id: str,
) -> ContributionRecord | None:
    """Append the ``saved`` marker inside the caller's open transaction.

    The caller writes the snapshot row in that same transaction, so the
    snapshot and its audit record commit or roll back together.
    """
    root = _first_root(nodes)
    if root is None:
        return None
    return tx.append_contribution(project_id, root.id, actor_id, version, ContributionAction.SAVED)


def restore_snapshot(
    store: NodeStore,
    project_id: int,
    version: int,
    payload: Any,
    actor_id: str,
) -> RestoreResult:
    """Bulk-replace a project's live nodes with a saved version.

    Node ids from the snapshot are kept so existing references stay valid.
    A ``restored`` contribution on the first root keeps the audit trail
    continuous.
    """
    snapshot_nodes = deserialize_nodes(payload, project_id)
    with store.transaction() as tx:
        restored = tx.replace_all(project_id, snapshot_nodes)
        root = _first_root(restored)
        record = None
        if root is not None:
            record = tx.append_contribution(
                project_id, root.id, actor_id, version, ContributionAction.RESTORED
            )
    logger.info(
        "snapshot_restored",
        project_id=project_id,
        version=version,
        nodes=len(restored),
        actor_id=actor_id,
    )
    return RestoreResult(version=version, nodes=restored, contribution=record)
