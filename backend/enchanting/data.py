from __future__ import annotations

TABLE = "Enchanting Table"
VILLAGER = "Villager Trading"
LOOT = "Chest Loot"
FISHING = "Fishing"


def _source(method: str, description: str, max_level: int) -> dict:
    return {"method": method, "description": description, "max_level": max_level}


def _table(max_level: int, description: str = "Enchant a book at an enchanting table") -> dict:
    return _source(TABLE, description, max_level)


def _librarian(max_level: int, profession: str = "a Librarian") -> dict:
    return _source(VILLAGER, f"Trade with {profession} villager", max_level)


def _loot(max_level: int, where: str = "various structure chests") -> dict:
    return _source(LOOT, f"Found in {where}", max_level)


def _fishing(max_level: int, description: str = "Rare catch while fishing") -> dict:
    return _source(FISHING, description, max_level)


ENCHANTMENTS = {
    # Swords
    "sharpness": {
        "display_name": "Sharpness",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [
            _table(4, "Enchant a book at an enchanting table (up to level 4)"),
            _librarian(5, "a Weaponsmith"),
            _loot(5, "Dungeon, Bastion Remnant, and Ancient City chests"),
            _fishing(4, "Rare catch while fishing with Luck of the Sea"),
        ],
    },
    "smite": {
        "display_name": "Smite",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(5, "a Weaponsmith"), _loot(5)],
    },
    "bane_of_arthropods": {
        "display_name": "Bane of Arthropods",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(5, "a Weaponsmith"), _loot(5)],
    },
    "knockback": {
        "display_name": "Knockback",
        "max_level": 2,
        "max_table_level": 2,
        "sources": [_table(2), _librarian(2), _loot(2, "Dungeon and Mineshaft chests")],
    },
    "fire_aspect": {
        "display_name": "Fire Aspect",
        "max_level": 2,
        "max_table_level": 2,
        "sources": [_table(2), _librarian(2), _loot(2, "Bastion Remnant and Ruined Portal chests")],
    },
    "looting": {
        "display_name": "Looting",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [
            _table(3),
            _librarian(3),
            _loot(3, "Ancient City and Bastion Remnant chests"),
            _fishing(3),
        ],
    },
    "sweeping_edge": {
        "display_name": "Sweeping Edge",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3)],
    },
    # Tools
    "efficiency": {
        "display_name": "Efficiency",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [
            _table(4, "Enchant a book at an enchanting table (up to level 4)"),
            _librarian(5),
            _loot(5, "Mineshaft and End City chests"),
        ],
    },
    "silk_touch": {
        "display_name": "Silk Touch",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1), _loot(1)],
    },
    "fortune": {
        "display_name": "Fortune",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _loot(3, "Buried Treasure and Bastion Remnant chests")],
    },
    # Armor
    "protection": {
        "display_name": "Protection",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [
            _table(4),
            _librarian(4, "an Armorer or Librarian"),
            _loot(4, "Stronghold, Ancient City, and End City chests"),
        ],
    },
    "projectile_protection": {
        "display_name": "Projectile Protection",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(4), _loot(4, "Pillager Outpost and Village chests")],
    },
    "blast_protection": {
        "display_name": "Blast Protection",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(4), _loot(4, "Ruined Portal and Bastion Remnant chests")],
    },
    "fire_protection": {
        "display_name": "Fire Protection",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(4), _loot(4, "Ruined Portal and Bastion Remnant chests")],
    },
    "thorns": {
        "display_name": "Thorns",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _loot(3)],
    },
    "feather_falling": {
        "display_name": "Feather Falling",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(4), _loot(4)],
    },
    "depth_strider": {
        "display_name": "Depth Strider",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _loot(3)],
    },
    "frost_walker": {
        "display_name": "Frost Walker",
        "max_level": 2,
        "max_table_level": 0,
        "sources": [_librarian(2), _loot(2)],
    },
    "soul_speed": {
        "display_name": "Soul Speed",
        "max_level": 3,
        "max_table_level": 0,
        "sources": [
            _source("Bartering", "Trade gold ingots with Piglins in the Nether", 3),
            _loot(3, "Bastion Remnant chests"),
        ],
    },
    "swift_sneak": {
        "display_name": "Swift Sneak",
        "max_level": 3,
        "max_table_level": 0,
        "sources": [_loot(3, "Ancient City chests only (rare)")],
    },
    "respiration": {
        "display_name": "Respiration",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _loot(3, "Buried Treasure and Shipwreck chests")],
    },
    "aqua_affinity": {
        "display_name": "Aqua Affinity",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1), _loot(1, "Buried Treasure chests")],
    },
    # Bows and crossbows
    "power": {
        "display_name": "Power",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [
            _table(4, "Enchant a book at an enchanting table (up to level 4)"),
            _librarian(5),
            _loot(5, "Dungeon and Pillager Outpost chests"),
        ],
    },
    "punch": {
        "display_name": "Punch",
        "max_level": 2,
        "max_table_level": 2,
        "sources": [_table(2), _librarian(2)],
    },
    "flame": {
        "display_name": "Flame",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1), _loot(1, "Bastion Remnant chests")],
    },
    "infinity": {
        "display_name": "Infinity",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1)],
    },
    "multishot": {
        "display_name": "Multishot",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1, "a Fletcher"), _loot(1, "Pillager Outpost chests")],
    },
    "piercing": {
        "display_name": "Piercing",
        "max_level": 4,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(4, "a Fletcher"), _loot(4, "Pillager Outpost chests")],
    },
    "quick_charge": {
        "display_name": "Quick Charge",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3, "a Fletcher"), _loot(3, "Pillager Outpost chests")],
    },
    # Tridents
    "impaling": {
        "display_name": "Impaling",
        "max_level": 5,
        "max_table_level": 4,
        "sources": [_table(4), _librarian(5)],
    },
    "loyalty": {
        "display_name": "Loyalty",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3)],
    },
    "channeling": {
        "display_name": "Channeling",
        "max_level": 1,
        "max_table_level": 1,
        "sources": [_table(1), _librarian(1)],
    },
    "riptide": {
        "display_name": "Riptide",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3)],
    },
    # Fishing rods
    "luck_of_the_sea": {
        "display_name": "Luck of the Sea",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _fishing(3)],
    },
    "lure": {
        "display_name": "Lure",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [_table(3), _librarian(3), _fishing(3)],
    },
    # Any item
    "unbreaking": {
        "display_name": "Unbreaking",
        "max_level": 3,
        "max_table_level": 3,
        "sources": [
            _table(3),
            _librarian(3),
            _loot(3, "End City, Stronghold, and Ancient City chests"),
            _fishing(3),
        ],
    },
    "mending": {
        "display_name": "Mending",
        "max_level": 1,
        "max_table_level": 0,
        "sources": [
            _source(VILLAGER, "Trade with a Librarian villager (best method)", 1),
            _loot(1, "Ancient City, Jungle Temple, and Pillager Outpost chests"),
            _fishing(1, "Very rare catch while fishing with Luck of the Sea III"),
            _source("Raid Drops", "Rare drop from raid captains", 1),
        ],
    },
}

CATEGORY_ENCHANTMENTS = {
    "sword": ["sharpness", "smite", "bane_of_arthropods", "knockback", "fire_aspect", "looting", "sweeping_edge"],
    "pickaxe": ["efficiency", "silk_touch", "fortune"],
    "axe": ["efficiency", "silk_touch", "fortune"],
    "shovel": ["efficiency", "silk_touch", "fortune"],
    "hoe": ["efficiency"],
    "bow": ["power", "punch", "flame", "infinity"],
    "crossbow": ["multishot", "piercing", "quick_charge"],
    "trident": ["impaling", "loyalty", "channeling", "riptide"],
    "fishing_rod": ["luck_of_the_sea", "lure"],
    "armor": ["protection", "projectile_protection", "blast_protection", "fire_protection", "thorns"],
}

COMMON_ENCHANTMENTS = ["unbreaking", "mending"]

ROMAN = ["", "I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X"]


def normalize_enchantment_name(name: str) -> str:
    return "_".join(name.strip().lower().split())


def get_enchantment(name: str) -> dict | None:
    key = normalize_enchantment_name(name)
    data = ENCHANTMENTS.get(key)
    if data is None:
        return None
    return {"name": key, **data}


def max_level(name: str) -> int | None:
    data = ENCHANTMENTS.get(normalize_enchantment_name(name))
    return data["max_level"] if data else None


def to_roman(value: int) -> str:
    if 0 <= value < len(ROMAN):
        return ROMAN[value]
    return str(value)


def default_display_name(name: str) -> str:
    return " ".join(part.capitalize() for part in name.replace("_", " ").split())


def item_category(item_name: str) -> str:
    name = item_name.strip().lower()
    if name.endswith("_sword"):
        return "sword"
    if name.endswith("_pickaxe"):
        return "pickaxe"
    if name.endswith("_axe"):
        return "axe"
    if name.endswith("_shovel"):
        return "shovel"
    if name.endswith("_hoe"):
        return "hoe"
    if name == "crossbow":
        return "crossbow"
    if name == "bow" or name.endswith("_bow"):
        return "bow"
    if "trident" in name:
        return "trident"
    if "fishing_rod" in name:
        return "fishing_rod"
    if name.endswith(("_helmet", "_chestplate", "_leggings", "_boots")):
        return "armor"
    return "generic"


def applicable_enchantments(item_name: str) -> list[str]:
    category = item_category(item_name)
    candidates = CATEGORY_ENCHANTMENTS.get(category)
    if not candidates:
        return []
    return candidates + [name for name in COMMON_ENCHANTMENTS if name not in candidates]
