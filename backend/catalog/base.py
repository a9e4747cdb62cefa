from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class CatalogError(RuntimeError):
    pass


@dataclass(frozen=True)
class Recipe:
    ingredients: tuple[tuple[str, int], ...]
    output_count: int = 1


@dataclass(frozen=True)
class CatalogItem:
    name: str
    display_name: str
    is_resource: bool
    recipe: Recipe | None = None

    @property
    def has_recipe(self) -> bool:
        return self.recipe is not None and bool(self.recipe.ingredients)


class ItemCatalog(Protocol):
    def lookup(self, item_name: str) -> CatalogItem | None:
        ...

    def search(self, query: str, limit: int = 20) -> list[CatalogItem]:
        ...


def item_from_payload(name: str, payload: dict) -> CatalogItem:
    """Build a catalog item from the shared JSON shape.

    ``{"display_name": ..., "resource": bool, "recipe": {"output": n,
    "ingredients": [[item, qty], ...]}}``; a missing recipe means raw.
    """
    display_name = payload.get("display_name") or _default_display_name(name)
    recipe = _recipe_from_payload(payload.get("recipe"))
    is_resource = bool(payload.get("resource")) or recipe is None
    return CatalogItem(
        name=name,
        display_name=str(display_name),
        is_resource=is_resource,
        recipe=recipe,
    )


def _recipe_from_payload(payload) -> Recipe | None:
    if not isinstance(payload, dict):
        return None
    ingredients = []
    for entry in payload.get("ingredients") or []:
        if isinstance(entry, dict):
            ingredients.append((str(entry.get("item")), int(entry.get("qty", 1))))
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            ingredients.append((str(entry[0]), int(entry[1])))
    if not ingredients:
        return None
    output = payload.get("output", 1)
    return Recipe(ingredients=tuple(ingredients), output_count=int(output))


def _default_display_name(name: str) -> str:
    return " ".join(part.capitalize() for part in name.split("_"))
