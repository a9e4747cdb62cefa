from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from crafting.nodes import Enchantment, enchantment_signature, enchantments_to_list


@dataclass(frozen=True)
class ResourceTotal:
    item_name: str
    display_name: str
    total_qty: int
    variant: str | None = None
    enchantments: tuple[Enchantment, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.item_name,
            "display_name": self.display_name,
            "total_qty": self.total_qty,
            "variant": self.variant,
            "enchantments": enchantments_to_list(self.enchantments),
        }


def flatten_resources(nodes: Iterable) -> list[ResourceTotal]:
    """Sum resource requirements by item identity, ignoring tree position.

    Works on expansion drafts and stored nodes alike.
    """
    totals: dict[tuple, list] = {}
    for node in nodes:
        if not node.is_resource:
            continue
        key = (node.item_name, node.variant or "", enchantment_signature(node.enchantments))
        entry = totals.get(key)
        if entry is None:
            totals[key] = [node, node.required_qty]
        else:
            entry[1] += node.required_qty

    results = [
        ResourceTotal(
            item_name=node.item_name,
            display_name=node.display_name,
            total_qty=qty,
            variant=node.variant,
            enchantments=tuple(Enchantment(name, level) for name, level in key[2]),
        )
        for key, (node, qty) in totals.items()
    ]
    results.sort(
        key=lambda total: (
            total.item_name,
            total.variant or "",
            enchantment_signature(total.enchantments),
        )
    )
    return results
