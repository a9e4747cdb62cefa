from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Iterable, NamedTuple

import structlog

from catalog.base import CatalogItem, ItemCatalog, Recipe
from crafting.errors import InvalidQuantityError, InvalidRecipeError, UnknownItemError
from crafting.nodes import NodeDraft, parse_enchantments

logger = structlog.get_logger(__name__)

MAX_TREE_DEPTH = int(os.getenv("MAX_TREE_DEPTH", "64"))


@dataclass(frozen=True)
class ExpandedTree:
    root: NodeDraft
    nodes: list[NodeDraft]

    @property
    def resources(self) -> list[NodeDraft]:
        return [node for node in self.nodes if node.is_resource]


class _Frame(NamedTuple):
    item_name: str
    quantity: int
    parent_key: int | None
    depth: int
    path: tuple[str, ...]


def expand_tree(
    catalog: ItemCatalog,
    target_item: str,
    target_qty: int,
    enchantments: Iterable | None = None,
    variant: str | None = None,
    *,
    max_depth: int = MAX_TREE_DEPTH,
) -> ExpandedTree:
    """Expand ``target_item`` into its full production tree.

    Nodes come back in pre-order (every parent before its children, children
    in recipe order). Duplicate ingredients under one parent are merged;
    the same item under different parents stays as separate nodes. Cycles
    and the depth bound end a branch with a resource leaf instead of failing.
    """
    if isinstance(target_qty, bool) or not isinstance(target_qty, int) or target_qty <= 0:
        raise InvalidQuantityError("Quantity must be a positive integer.")
    root_enchantments = parse_enchantments(enchantments)

    nodes: list[NodeDraft] = []
    stack = [_Frame(target_item.strip().lower(), target_qty, None, 0, ())]
    while stack:
        frame = stack.pop()
        item = catalog.lookup(frame.item_name)
        if item is None:
            raise UnknownItemError(frame.item_name)

        is_root = frame.parent_key is None
        leaf = _is_leaf(item, frame, max_depth)
        node = NodeDraft(
            key=len(nodes),
            parent_key=frame.parent_key,
            item_name=item.name,
            display_name=item.display_name,
            required_qty=frame.quantity,
            is_resource=leaf,
            depth=frame.depth,
            enchantments=root_enchantments if is_root else (),
            variant=variant if is_root else None,
        )
        nodes.append(node)
        if leaf:
            continue

        batches = math.ceil(frame.quantity / item.recipe.output_count)
        path = frame.path + (item.name,)
        children = [
            _Frame(ingredient, batches * per_craft, node.key, frame.depth + 1, path)
            for ingredient, per_craft in _merged_ingredients(item)
        ]
        stack.extend(reversed(children))

    logger.debug(
        "tree_expanded",
        item=target_item,
        quantity=target_qty,
        nodes=len(nodes),
        resources=sum(1 for node in nodes if node.is_resource),
    )
    return ExpandedTree(root=nodes[0], nodes=nodes)


def _is_leaf(item: CatalogItem, frame: _Frame, max_depth: int) -> bool:
    if item.is_resource or not item.has_recipe:
        return True
    if item.name in frame.path:
        logger.warning("recipe_cycle_truncated", item=item.name, path=list(frame.path))
        return True
    if frame.depth >= max_depth:
        logger.warning("recipe_depth_truncated", item=item.name, depth=frame.depth)
        return True
    _validate_recipe(item.name, item.recipe)
    return False


def _validate_recipe(item_name: str, recipe: Recipe) -> None:
    if recipe.output_count <= 0:
        logger.error("invalid_recipe", item=item_name, output_count=recipe.output_count)
        raise InvalidRecipeError(f"Recipe for {item_name} has output count {recipe.output_count}.")
    for ingredient, qty in recipe.ingredients:
        if qty <= 0:
            logger.error("invalid_recipe", item=item_name, ingredient=ingredient, qty=qty)
            raise InvalidRecipeError(f"Recipe for {item_name} needs {qty} {ingredient}.")


def _merged_ingredients(item: CatalogItem) -> list[tuple[str, int]]:
    merged: dict[str, int] = {}
    for ingredient, qty in item.recipe.ingredients:
        key = ingredient.strip().lower()
        merged[key] = merged.get(key, 0) + qty
    return list(merged.items())
