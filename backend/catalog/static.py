from __future__ import annotations

import json
import os
from pathlib import Path

from catalog.base import CatalogItem, item_from_payload

DEFAULT_DATA_PATH = Path(__file__).resolve().parent / "data" / "items.json"


class StaticItemCatalog:
    """Item catalog backed by an in-memory mapping of item payloads."""

    def __init__(self, items: dict[str, dict]) -> None:
        self._items = {
            name: item_from_payload(name, payload)
            for name, payload in items.items()
            if isinstance(payload, dict)
        }

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> "StaticItemCatalog":
        data_path = Path(path or os.getenv("CATALOG_PATH") or DEFAULT_DATA_PATH)
        with data_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        items = data.get("items") if isinstance(data, dict) else None
        return cls(items if isinstance(items, dict) else {})

    def lookup(self, item_name: str) -> CatalogItem | None:
        return self._items.get(item_name.strip().lower())

    def search(self, query: str, limit: int = 20) -> list[CatalogItem]:
        needle = query.strip().lower()
        results = []
        for item in self._items.values():
            if needle in item.name or needle in item.display_name.lower():
                results.append(item)
                if len(results) >= limit:
                    break
        return results

    def __len__(self) -> int:
        return len(self._items)
