from __future__ import annotations


class CraftingError(ValueError):
    pass


class UnknownItemError(CraftingError):
    def __init__(self, item_name: str) -> None:
        super().__init__(f"Unknown item: {item_name}")
        self.item_name = item_name


class UnknownEnchantmentError(CraftingError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown enchantment: {name}")
        self.name = name


class InvalidQuantityError(CraftingError):
    pass


class InvalidRecipeError(CraftingError):
    """The catalog returned a recipe that cannot be expanded."""


class InvalidActionError(CraftingError):
    pass


class InvalidEnchantmentError(CraftingError):
    pass


class InvalidNodeKindError(CraftingError):
    pass


class NodeNotFoundError(CraftingError):
    def __init__(self, node_id: int) -> None:
        super().__init__(f"Node {node_id} not found in this project")
        self.node_id = node_id


class NodeAlreadyCraftedError(CraftingError):
    pass


class DependenciesIncompleteError(CraftingError):
    def __init__(self, display_name: str, incomplete: list) -> None:
        missing = ", ".join(
            f"{child.display_name} ({child.collected_qty}/{child.required_qty})"
            for child in incomplete
        )
        super().__init__(f"Cannot craft {display_name}: incomplete dependencies: {missing}")
        self.display_name = display_name
        self.incomplete = list(incomplete)
