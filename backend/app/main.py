from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import delete, select

from catalog.base import CatalogError
from catalog.loader import load_catalog
from crafting.bottleneck import find_bottlenecks
from crafting.contribution import contribute, update_enchantments
from crafting.errors import (
    CraftingError,
    DependenciesIncompleteError,
    InvalidRecipeError,
    NodeAlreadyCraftedError,
    NodeNotFoundError,
)
from crafting.flatten import flatten_resources
from crafting.leaderboard import contribution_leaderboard
from crafting.nodes import NodeDraft, enchantments_to_list, parse_enchantments
from crafting.progress import get_progress
from crafting.snapshots import record_saved, restore_snapshot, serialize_nodes
from crafting.sql_store import SqlNodeStore, SqlNodeTransaction, insert_drafts, node_from_row
from crafting.status import derive_statuses
from crafting.tasks import suggest_tasks
from crafting.tree import ExpandedTree, expand_tree
from db import SessionLocal, check_db_connection
from enchanting.anvil import book_requirements, enchantment_plan, validate_enchantment_levels
from enchanting.data import ENCHANTMENTS, applicable_enchantments, item_category, max_level
from logging_config import get_logger, setup_logging
from models import Contribution, CraftingNode, PlanSnapshot, Project

logger = get_logger(__name__)

PROJECT_STATUSES = {"active", "completed", "archived"}

item_catalog = load_catalog()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(
    title="craftchain API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


class ProjectItem(BaseModel):
    item_name: str
    quantity: int = 1
    enchantments: list[dict[str, Any]] | None = None
    variant: str | None = None


class ProjectCreateRequest(BaseModel):
    owner_id: str
    name: str
    description: str | None = None
    root_item_name: str | None = None
    quantity: int | None = None
    enchantments: list[dict[str, Any]] | None = None
    variant: str | None = None
    items: list[ProjectItem] | None = None


class ProjectStatusRequest(BaseModel):
    status: str


class ContributeRequest(BaseModel):
    node_id: int
    user_id: str
    action: str
    quantity: int = 1


class SnapshotCreateRequest(BaseModel):
    user_id: str
    label: str | None = None


class SnapshotRestoreRequest(BaseModel):
    user_id: str


class EnchantmentsUpdateRequest(BaseModel):
    enchantments: list[dict[str, Any]]


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NodeNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (DependenciesIncompleteError, NodeAlreadyCraftedError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, InvalidRecipeError):
        logger.error("recipe_integrity_failure", error=str(exc))
        return HTTPException(status_code=500, detail=str(exc))
    if isinstance(exc, CatalogError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _node_store() -> SqlNodeStore:
    return SqlNodeStore(SessionLocal)


def _get_project(db, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _require_project(project_id: int) -> None:
    with SessionLocal() as db:
        _get_project(db, project_id)


def _project_nodes(db, project_id: int) -> list:
    rows = db.execute(
        select(CraftingNode)
        .where(CraftingNode.project_id == project_id)
        .order_by(CraftingNode.id.asc())
    ).scalars()
    return [node_from_row(row) for row in rows]


def _project_payload(project: Project) -> dict:
    return {
        "id": project.id,
        "owner_id": project.owner_id,
        "name": project.name,
        "description": project.description,
        "root_item_name": project.root_item_name,
        "status": project.status,
        "plan_version": project.plan_version,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def _nodes_payload(nodes: list) -> list[dict]:
    statuses = derive_statuses(nodes)
    payload = []
    for node in nodes:
        data = node.to_dict()
        data["status"] = statuses[node.id].value
        data["remaining_qty"] = node.remaining_qty
        payload.append(data)
    return payload


def _draft_payload(draft: NodeDraft) -> dict:
    return {
        "key": draft.key,
        "parent_key": draft.parent_key,
        "item_name": draft.item_name,
        "display_name": draft.display_name,
        "required_qty": draft.required_qty,
        "is_resource": draft.is_resource,
        "depth": draft.depth,
        "enchantments": enchantments_to_list(draft.enchantments),
        "variant": draft.variant,
    }


def _expand_target(item: ProjectItem) -> ExpandedTree:
    validate_enchantment_levels(parse_enchantments(item.enchantments))
    return expand_tree(
        item_catalog,
        item.item_name,
        item.quantity,
        enchantments=item.enchantments,
        variant=item.variant,
    )


def _expand_targets(items: list[ProjectItem]) -> list[ExpandedTree]:
    try:
        return [_expand_target(item) for item in items]
    except (CraftingError, CatalogError) as exc:
        raise _http_error(exc) from exc


@app.get("/health")
def health() -> dict:
    try:
        check_db_connection()
    except Exception as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ok"}


@app.post("/trees/expand")
def expand(payload: ProjectItem) -> dict:
    tree = _expand_targets([payload])[0]
    return {
        "root": _draft_payload(tree.root),
        "nodes": [_draft_payload(node) for node in tree.nodes],
        "resources": [total.to_dict() for total in flatten_resources(tree.nodes)],
        "books": book_requirements(tree.root.enchantments),
    }


@app.post("/projects")
def create_project(payload: ProjectCreateRequest) -> dict:
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="name is required")
    targets = list(payload.items or [])
    if not targets and payload.root_item_name:
        targets.append(
            ProjectItem(
                item_name=payload.root_item_name,
                quantity=payload.quantity if payload.quantity is not None else 1,
                enchantments=payload.enchantments,
                variant=payload.variant,
            )
        )
    if not targets:
        raise HTTPException(status_code=400, detail="At least one target item is required")
    trees = _expand_targets(targets)

    with SessionLocal() as db:
        project = Project(
            owner_id=payload.owner_id,
            name=payload.name.strip(),
            description=payload.description,
            root_item_name=trees[0].root.item_name,
            status="active",
            plan_version=0,
        )
        db.add(project)
        db.flush()
        nodes = []
        for tree in trees:
            nodes.extend(insert_drafts(db, project.id, tree.nodes))
        db.commit()
        db.refresh(project)
        logger.info(
            "project_created",
            project_id=project.id,
            owner_id=project.owner_id,
            roots=len(trees),
            nodes=len(nodes),
        )
        return {
            **_project_payload(project),
            "nodes": _nodes_payload(nodes),
            "resources": [total.to_dict() for total in flatten_resources(nodes)],
        }


@app.get("/projects")
def list_projects(owner_id: str | None = None) -> list[dict]:
    with SessionLocal() as db:
        query = select(Project).order_by(Project.id.asc())
        if owner_id:
            query = query.where(Project.owner_id == owner_id)
        records = db.execute(query).scalars().all()
        results = []
        for record in records:
            data = _project_payload(record)
            data["progress"] = get_progress(_project_nodes(db, record.id)).to_dict()
            results.append(data)
        return results


@app.get("/projects/{project_id}")
def get_project(project_id: int) -> dict:
    with SessionLocal() as db:
        project = _get_project(db, project_id)
        nodes = _project_nodes(db, project_id)
        return {
            **_project_payload(project),
            "nodes": _nodes_payload(nodes),
            "resources": [total.to_dict() for total in flatten_resources(nodes)],
            "progress": get_progress(nodes).to_dict(),
        }


@app.patch("/projects/{project_id}/status")
def update_project_status(project_id: int, payload: ProjectStatusRequest) -> dict:
    status = payload.status.strip().lower()
    if status not in PROJECT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    with SessionLocal() as db:
        project = _get_project(db, project_id)
        project.status = status
        db.commit()
        db.refresh(project)
        return _project_payload(project)


@app.delete("/projects/{project_id}")
def delete_project(project_id: int) -> dict:
    with SessionLocal() as db:
        project = _get_project(db, project_id)
        db.execute(delete(Contribution).where(Contribution.project_id == project_id))
        db.execute(delete(PlanSnapshot).where(PlanSnapshot.project_id == project_id))
        db.execute(delete(CraftingNode).where(CraftingNode.project_id == project_id))
        db.delete(project)
        db.commit()
    logger.info("project_deleted", project_id=project_id)
    return {"id": project_id, "deleted": True}


@app.post("/projects/{project_id}/items")
def add_project_item(project_id: int, payload: ProjectItem) -> dict:
    tree = _expand_targets([payload])[0]
    with SessionLocal() as db:
        _get_project(db, project_id)
        nodes = insert_drafts(db, project_id, tree.nodes)
        db.commit()
    return {
        "project_id": project_id,
        "nodes": _nodes_payload(nodes),
        "resources": [total.to_dict() for total in flatten_resources(nodes)],
    }


@app.post("/projects/{project_id}/contribute")
def contribute_to_node(project_id: int, payload: ContributeRequest) -> dict:
    _require_project(project_id)
    try:
        result = contribute(
            _node_store(),
            project_id=project_id,
            node_id=payload.node_id,
            actor_id=payload.user_id,
            quantity=payload.quantity,
            action=payload.action,
        )
    except CraftingError as exc:
        raise _http_error(exc) from exc
    return result.to_dict()


@app.patch("/projects/{project_id}/nodes/{node_id}/enchantments")
def set_node_enchantments(project_id: int, node_id: int, payload: EnchantmentsUpdateRequest) -> dict:
    _require_project(project_id)
    try:
        enchantments = parse_enchantments(payload.enchantments)
        validate_enchantment_levels(enchantments)
        node = update_enchantments(
            _node_store(),
            project_id=project_id,
            node_id=node_id,
            enchantments=enchantments,
        )
    except CraftingError as exc:
        raise _http_error(exc) from exc
    return {"node": node.to_dict(), "books": book_requirements(node.enchantments)}


@app.get("/projects/{project_id}/bottlenecks")
def list_bottlenecks(project_id: int, limit: int | None = Query(default=None, ge=1)) -> list[dict]:
    _require_project(project_id)
    nodes = _node_store().list_nodes(project_id)
    return [bottleneck.to_dict() for bottleneck in find_bottlenecks(nodes, limit=limit)]


@app.get("/projects/{project_id}/progress")
def project_progress(project_id: int) -> dict:
    _require_project(project_id)
    return get_progress(_node_store().list_nodes(project_id)).to_dict()


@app.get("/projects/{project_id}/contributions")
def list_contributions(project_id: int, limit: int = Query(default=50, ge=1, le=500)) -> list[dict]:
    _require_project(project_id)
    records = _node_store().list_contributions(project_id)
    return [record.to_dict() for record in records[:limit]]


@app.get("/projects/{project_id}/leaderboard")
def project_leaderboard(project_id: int) -> list[dict]:
    _require_project(project_id)
    return contribution_leaderboard(_node_store().list_contributions(project_id))


@app.get("/projects/{project_id}/tasks")
def project_tasks(project_id: int, role: str = "member") -> list[dict]:
    _require_project(project_id)
    nodes = _node_store().list_nodes(project_id)
    return [task.to_dict() for task in suggest_tasks(nodes, role=role)]


@app.post("/projects/{project_id}/snapshots")
def create_snapshot(project_id: int, payload: SnapshotCreateRequest) -> dict:
    with SessionLocal() as db:
        project = db.get(Project, project_id, with_for_update=True)
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        nodes = _project_nodes(db, project_id)
        version = project.plan_version + 1
        snapshot = PlanSnapshot(
            project_id=project_id,
            version=version,
            label=payload.label or f"Version {version}",
            snapshot_json=serialize_nodes(nodes),
            created_by=payload.user_id,
        )
        project.plan_version = version
        db.add(snapshot)
        record_saved(SqlNodeTransaction(db), project_id, nodes, version, payload.user_id)
        db.commit()
        db.refresh(snapshot)
        response = _snapshot_payload(snapshot)
    logger.info("snapshot_saved", project_id=project_id, version=version, nodes=len(nodes))
    return response


@app.get("/projects/{project_id}/snapshots")
def list_snapshots(project_id: int) -> list[dict]:
    with SessionLocal() as db:
        _get_project(db, project_id)
        records = db.execute(
            select(PlanSnapshot)
            .where(PlanSnapshot.project_id == project_id)
            .order_by(PlanSnapshot.version.desc())
        ).scalars()
        return [_snapshot_payload(record) for record in records]


@app.post("/projects/{project_id}/snapshots/{version}/restore")
def restore_project_snapshot(project_id: int, version: int, payload: SnapshotRestoreRequest) -> dict:
    with SessionLocal() as db:
        _get_project(db, project_id)
        snapshot = db.execute(
            select(PlanSnapshot).where(
                PlanSnapshot.project_id == project_id,
                PlanSnapshot.version == version,
            )
        ).scalar_one_or_none()
        if snapshot is None:
            raise HTTPException(status_code=404, detail="Snapshot not found")
        data = snapshot.snapshot_json
    try:
        result = restore_snapshot(_node_store(), project_id, version, data, payload.user_id)
    except (CraftingError, KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Snapshot {version} is unreadable") from exc
    return {
        "version": result.version,
        "nodes": _nodes_payload(result.nodes),
        "contribution": result.contribution.to_dict() if result.contribution else None,
    }


def _snapshot_payload(snapshot: PlanSnapshot) -> dict:
    data = snapshot.snapshot_json if isinstance(snapshot.snapshot_json, dict) else {}
    return {
        "id": snapshot.id,
        "project_id": snapshot.project_id,
        "version": snapshot.version,
        "label": snapshot.label,
        "created_by": snapshot.created_by,
        "created_at": snapshot.created_at.isoformat() if snapshot.created_at else None,
        "node_count": len(data.get("nodes") or []),
    }


@app.get("/items/search")
def search_items(q: str = "", limit: int = Query(default=20, ge=1, le=100)) -> list[dict]:
    if not q.strip():
        return []
    try:
        items = item_catalog.search(q, limit=limit)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return [
        {
            "name": item.name,
            "display_name": item.display_name,
            "is_resource": item.is_resource,
            "has_recipe": item.has_recipe,
        }
        for item in items
    ]


@app.get("/items/{item_name}")
def get_item(item_name: str) -> dict:
    try:
        item = item_catalog.lookup(item_name)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    recipe = None
    if item.recipe is not None:
        recipe = {
            "output_count": item.recipe.output_count,
            "ingredients": [
                {"item_name": name, "quantity": qty} for name, qty in item.recipe.ingredients
            ],
        }
    return {
        "name": item.name,
        "display_name": item.display_name,
        "is_resource": item.is_resource,
        "recipe": recipe,
        "category": item_category(item.name),
        "applicable_enchantments": applicable_enchantments(item.name),
    }


@app.get("/enchantments")
def list_enchantments() -> list[dict]:
    return [
        {"name": name, "display_name": data["display_name"], "max_level": data["max_level"]}
        for name, data in sorted(ENCHANTMENTS.items())
    ]


@app.get("/enchantments/{name}/plan")
def get_enchantment_plan(name: str, level: int | None = None) -> dict:
    try:
        if level is None:
            level = max_level(name) or 1
        return enchantment_plan(name, level)
    except CraftingError as exc:
        raise _http_error(exc) from exc
