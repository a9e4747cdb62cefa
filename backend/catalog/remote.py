from __future__ import annotations

import os
from functools import lru_cache

import requests
import structlog

from catalog.base import CatalogError, CatalogItem, item_from_payload

logger = structlog.get_logger(__name__)

CACHE_SIZE = int(os.getenv("CATALOG_CACHE_SIZE", "512"))


class _ItemMissing(LookupError):
    pass


class HttpItemCatalog:
    """Read-only client for a catalog service exposing ``/items`` endpoints.

    Found items are kept in a per-client LRU cache. Misses and failures are
    not cached, so unknown names never take up cache slots.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: int | None = None,
        cache_size: int | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("CATALOG_URL") or "http://localhost:8100").rstrip(
            "/"
        )
        if timeout is None:
            timeout = int(os.getenv("CATALOG_TIMEOUT", "10"))
        self.timeout = timeout
        self._cached_fetch = lru_cache(maxsize=cache_size or CACHE_SIZE)(self._fetch_item)

    def lookup(self, item_name: str) -> CatalogItem | None:
        try:
            return self._cached_fetch(item_name.strip().lower())
        except _ItemMissing:
            return None

    def cache_info(self):
        return self._cached_fetch.cache_info()

    def _fetch_item(self, key: str) -> CatalogItem:
        data = self._get(f"/items/{key}")
        if data is None:
            raise _ItemMissing(key)
        return item_from_payload(key, data)

    def search(self, query: str, limit: int = 20) -> list[CatalogItem]:
        data = self._get("/items", params={"q": query, "limit": limit})
        entries = data.get("items") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise CatalogError("Invalid search response from catalog.")
        results = []
        for entry in entries[:limit]:
            if isinstance(entry, dict) and entry.get("name"):
                results.append(item_from_payload(str(entry["name"]), entry))
        return results

    def _get(self, path: str, params: dict | None = None) -> dict | None:
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("catalog_unreachable", url=url, error=str(exc))
            raise CatalogError(f"Catalog unavailable: {exc}") from exc
        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
            data = response.json()
        except (requests.HTTPError, ValueError) as exc:
            raise CatalogError(f"Invalid response from catalog: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogError("Invalid response from catalog.")
        return data
