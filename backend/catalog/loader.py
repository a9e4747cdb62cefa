from __future__ import annotations

import os

from catalog.base import ItemCatalog
from catalog.remote import HttpItemCatalog
from catalog.static import StaticItemCatalog


def load_catalog() -> ItemCatalog:
    if os.getenv("CATALOG_URL"):
        return HttpItemCatalog()
    return StaticItemCatalog.from_file()
