from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from crafting.errors import InvalidEnchantmentError


@dataclass(frozen=True)
class Enchantment:
    name: str
    level: int

    def to_dict(self) -> dict:
        return {"name": self.name, "level": self.level}


@dataclass(frozen=True)
class NodeDraft:
    """A node produced by tree expansion, before it has a storage id.

    ``key`` is the draft's index in the expansion and ``parent_key`` points at
    another draft's key.
    """

    key: int
    parent_key: int | None
    item_name: str
    display_name: str
    required_qty: int
    is_resource: bool
    depth: int
    enchantments: tuple[Enchantment, ...] = ()
    variant: str | None = None


@dataclass(frozen=True)
class NodeState:
    id: int
    project_id: int
    parent_id: int | None
    item_name: str
    display_name: str
    required_qty: int
    collected_qty: int
    is_resource: bool
    depth: int
    enchantments: tuple[Enchantment, ...] = field(default_factory=tuple)
    variant: str | None = None

    @property
    def remaining_qty(self) -> int:
        return max(0, self.required_qty - self.collected_qty)

    @property
    def is_complete(self) -> bool:
        return self.collected_qty >= self.required_qty

    def with_collected(self, collected_qty: int) -> "NodeState":
        return replace(self, collected_qty=collected_qty)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "parent_id": self.parent_id,
            "item_name": self.item_name,
            "display_name": self.display_name,
            "required_qty": self.required_qty,
            "collected_qty": self.collected_qty,
            "is_resource": self.is_resource,
            "depth": self.depth,
            "enchantments": enchantments_to_list(self.enchantments),
            "variant": self.variant,
        }


def parse_enchantments(raw: Any) -> tuple[Enchantment, ...]:
    if not raw:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise InvalidEnchantmentError("enchantments must be a list of {name, level}")
    parsed = []
    for entry in raw:
        if isinstance(entry, Enchantment):
            parsed.append(entry)
            continue
        if isinstance(entry, dict):
            name, level = entry.get("name"), entry.get("level")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            name, level = entry
        else:
            raise InvalidEnchantmentError(f"Invalid enchantment: {entry!r}")
        if not isinstance(name, str) or not name.strip():
            raise InvalidEnchantmentError(f"Invalid enchantment: {entry!r}")
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            raise InvalidEnchantmentError(f"Invalid enchantment level for {name}: {level!r}")
        parsed.append(Enchantment(name=name.strip().lower().replace(" ", "_"), level=level))
    return tuple(parsed)


def enchantments_to_list(enchantments: Iterable[Enchantment]) -> list[dict] | None:
    items = [enchantment.to_dict() for enchantment in enchantments]
    return items or None


def enchantment_signature(enchantments: Iterable[Enchantment]) -> tuple[tuple[str, int], ...]:
    return tuple(sorted((e.name, e.level) for e in enchantments))


def index_children(nodes: Iterable[NodeState]) -> dict[int | None, list[NodeState]]:
    children: dict[int | None, list[NodeState]] = {}
    for node in nodes:
        children.setdefault(node.parent_id, []).append(node)
    return children
