from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Sequence

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from crafting.nodes import (
    Enchantment,
    NodeDraft,
    NodeState,
    enchantments_to_list,
    parse_enchantments,
)
from crafting.store import ContributionAction, ContributionRecord
from models import Contribution, CraftingNode


def node_from_row(row: CraftingNode) -> NodeState:
    return NodeState(
        id=row.id,
        project_id=row.project_id,
        parent_id=row.parent_id,
        item_name=row.item_name,
        display_name=row.display_name,
        required_qty=row.required_qty,
        collected_qty=row.collected_qty,
        is_resource=row.is_resource,
        depth=row.depth,
        enchantments=parse_enchantments(row.enchantments_json),
        variant=row.variant,
    )


def record_from_row(row: Contribution) -> ContributionRecord:
    return ContributionRecord(
        id=row.id,
        project_id=row.project_id,
        node_id=row.node_id,
        user_id=row.user_id,
        quantity=row.quantity,
        action=ContributionAction(row.action),
        created_at=row.created_at,
    )


def insert_drafts(session: Session, project_id: int, drafts: Sequence[NodeDraft]) -> list[NodeState]:
    """Insert expansion drafts in order; parents must precede their children."""
    ids: dict[int, int] = {}
    rows = []
    for draft in drafts:
        row = CraftingNode(
            project_id=project_id,
            parent_id=ids[draft.parent_key] if draft.parent_key is not None else None,
            item_name=draft.item_name,
            display_name=draft.display_name,
            required_qty=draft.required_qty,
            collected_qty=0,
            is_resource=draft.is_resource,
            depth=draft.depth,
            enchantments_json=enchantments_to_list(draft.enchantments),
            variant=draft.variant,
        )
        session.add(row)
        session.flush()
        ids[draft.key] = row.id
        rows.append(row)
    return [node_from_row(row) for row in rows]


class SqlNodeStore:
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def create_nodes(self, project_id: int, drafts: Sequence[NodeDraft]) -> list[NodeState]:
        with self._session_factory() as session:
            with session.begin():
                return insert_drafts(session, project_id, drafts)

    def list_nodes(self, project_id: int) -> list[NodeState]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CraftingNode)
                .where(CraftingNode.project_id == project_id)
                .order_by(CraftingNode.id.asc())
            ).scalars()
            return [node_from_row(row) for row in rows]

    def list_contributions(self, project_id: int) -> list[ContributionRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(Contribution)
                .where(Contribution.project_id == project_id)
                .order_by(Contribution.id.desc())
            ).scalars()
            return [record_from_row(row) for row in rows]

    @contextmanager
    def transaction(self) -> Iterator["SqlNodeTransaction"]:
        with self._session_factory() as session:
            with session.begin():
                yield SqlNodeTransaction(session)


class SqlNodeTransaction:
    """Node operations bound to one open session and transaction.

    Rows are locked with ``SELECT ... FOR UPDATE`` where the dialect supports
    it; quantity changes are single conditional ``UPDATE`` statements.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_node(self, project_id: int, node_id: int) -> NodeState | None:
        row = self.session.execute(
            select(CraftingNode)
            .where(CraftingNode.id == node_id, CraftingNode.project_id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return node_from_row(row) if row is not None else None

    def children(self, node_id: int) -> list[NodeState]:
        rows = self.session.execute(
            select(CraftingNode)
            .where(CraftingNode.parent_id == node_id)
            .order_by(CraftingNode.id.asc())
            .execution_options(populate_existing=True)
        ).scalars()
        return [node_from_row(row) for row in rows]

    def add_clamped(self, node_id: int, delta: int, cap: int) -> tuple[int, int]:
        previous = self._collected(node_id, lock=True)
        total = CraftingNode.collected_qty + delta
        self.session.execute(
            update(CraftingNode)
            .where(CraftingNode.id == node_id, CraftingNode.collected_qty < cap)
            .values(collected_qty=case((total > cap, cap), else_=total))
            .execution_options(synchronize_session=False)
        )
        return previous, self._collected(node_id)

    def mark_crafted(self, node_id: int) -> bool:
        self.session.execute(
            select(CraftingNode.id).where(CraftingNode.parent_id == node_id).with_for_update()
        ).all()
        pending = self.session.scalar(
            select(func.count())
            .select_from(CraftingNode)
            .where(
                CraftingNode.parent_id == node_id,
                CraftingNode.collected_qty < CraftingNode.required_qty,
            )
        )
        if pending:
            return False
        result = self.session.execute(
            update(CraftingNode)
            .where(
                CraftingNode.id == node_id,
                CraftingNode.collected_qty < CraftingNode.required_qty,
            )
            .values(collected_qty=CraftingNode.required_qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_enchantments(self, node_id: int, enchantments: Sequence[Enchantment]) -> NodeState:
        row = self.session.get(CraftingNode, node_id, populate_existing=True)
        row.enchantments_json = enchantments_to_list(enchantments)
        self.session.flush()
        return node_from_row(row)

    def replace_all(self, project_id: int, nodes: Sequence[NodeState]) -> list[NodeState]:
        self.session.execute(
            delete(CraftingNode)
            .where(CraftingNode.project_id == project_id)
            .execution_options(synchronize_session=False)
        )
        self.session.expunge_all()
        rows = []
        for node in sorted(nodes, key=lambda item: (item.depth, item.id)):
            row = CraftingNode(
                id=node.id,
                project_id=project_id,
                parent_id=node.parent_id,
                item_name=node.item_name,
                display_name=node.display_name,
                required_qty=node.required_qty,
                collected_qty=node.collected_qty,
                is_resource=node.is_resource,
                depth=node.depth,
                enchantments_json=enchantments_to_list(node.enchantments),
                variant=node.variant,
            )
            self.session.add(row)
            rows.append(row)
        self.session.flush()
        return [node_from_row(row) for row in rows]

    def append_contribution(
        self,
        project_id: int,
        node_id: int,
        user_id: str,
        quantity: int,
        action: ContributionAction,
    ) -> ContributionRecord:
        row = Contribution(
            project_id=project_id,
            node_id=node_id,
            user_id=user_id,
            quantity=quantity,
            action=ContributionAction(action).value,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(row)
        self.session.flush()
        return record_from_row(row)

    def _collected(self, node_id: int, lock: bool = False) -> int:
        query = select(CraftingNode.collected_qty).where(CraftingNode.id == node_id)
        if lock:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one()
