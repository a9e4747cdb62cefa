from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from crafting.errors import InvalidEnchantmentError, InvalidQuantityError, UnknownEnchantmentError
from crafting.nodes import Enchantment
from enchanting.data import (
    TABLE,
    VILLAGER,
    default_display_name,
    get_enchantment,
    max_level,
    normalize_enchantment_name,
    to_roman,
)

GENERIC_SOURCES = [
    {"method": VILLAGER, "description": "Trade with a Librarian villager", "max_level": None},
    {"method": "Chest Loot", "description": "Found in various structure chests", "max_level": None},
]


@dataclass(frozen=True)
class AnvilStep:
    step: int
    input_level: int
    output_level: int
    count: int
    description: str

    def to_dict(self) -> dict:
        return asdict(self)


def books_needed(target_level: int) -> int:
    """Level-I books needed to reach ``target_level`` by pairwise anvil merges."""
    if target_level <= 1:
        return 1
    return 2 ** (target_level - 1)


def anvil_steps(target_level: int) -> list[AnvilStep]:
    steps = []
    for level in range(1, target_level):
        count = 2 ** (target_level - level - 1)
        steps.append(
            AnvilStep(
                step=level,
                input_level=level,
                output_level=level + 1,
                count=count,
                description=(
                    f"Combine {count} pairs of {to_roman(level)} books "
                    f"into {count} x {to_roman(level + 1)}"
                ),
            )
        )
    return steps


def best_strategy(enchantment_name: str, level: int) -> str:
    info = get_enchantment(enchantment_name)
    if info is None:
        return "Trade with a Librarian villager for the best results."

    display = info["display_name"]
    villager = next((s for s in info["sources"] if s["method"] == VILLAGER), None)
    if villager is not None and villager["max_level"] >= level:
        return f"Best: {villager['description']} for a {display} {to_roman(level)} book directly."

    if info["max_table_level"] >= level:
        return "Enchant books at a level 30 enchanting table, or trade with a Librarian."

    if any(source["method"] == TABLE for source in info["sources"]) or villager is not None:
        return (
            f"Combine {books_needed(level)} x {display} I books on an anvil, or trade for "
            "higher-level books from Librarians to reduce combining."
        )
    sources = ", ".join(source["method"] for source in info["sources"])
    return (
        f"Collect {books_needed(level)} x {display} I books ({sources}) "
        "and combine them on an anvil."
    )


def enchantment_plan(enchantment_name: str, target_level: int) -> dict:
    if isinstance(target_level, bool) or not isinstance(target_level, int) or target_level < 1:
        raise InvalidQuantityError("Target level must be at least 1.")
    info = get_enchantment(enchantment_name)
    if info is None:
        raise UnknownEnchantmentError(enchantment_name)
    return {
        "enchantment": info["name"],
        "display_name": info["display_name"],
        "target_level": target_level,
        "max_level": info["max_level"],
        "books_needed": books_needed(target_level),
        "steps": [step.to_dict() for step in anvil_steps(target_level)],
        "strategy": best_strategy(info["name"], target_level),
        "sources": info["sources"],
    }


def book_requirements(enchantments: Iterable[Enchantment]) -> list[dict]:
    requirements = []
    for enchantment in enchantments:
        info = get_enchantment(enchantment.name)
        name = normalize_enchantment_name(enchantment.name)
        requirements.append(
            {
                "enchantment": name,
                "display_name": info["display_name"] if info else default_display_name(name),
                "target_level": enchantment.level,
                "books_needed": books_needed(enchantment.level),
                "steps": [step.to_dict() for step in anvil_steps(enchantment.level)],
                "strategy": best_strategy(name, enchantment.level),
                "sources": info["sources"] if info else GENERIC_SOURCES,
            }
        )
    return requirements


def validate_enchantment_levels(enchantments: Iterable[Enchantment]) -> None:
    for enchantment in enchantments:
        limit = max_level(enchantment.name)
        if limit is not None and enchantment.level > limit:
            raise InvalidEnchantmentError(
                f"{enchantment.name.replace('_', ' ')} has a max level of {limit}"
            )
