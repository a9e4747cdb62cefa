import json
from types import SimpleNamespace

import pytest
import requests

from catalog.base import CatalogError, item_from_payload
from catalog.loader import load_catalog
from catalog.remote import HttpItemCatalog
from catalog.static import StaticItemCatalog


def test_bundled_catalog_loads() -> None:
    catalog = StaticItemCatalog.from_file()

    pickaxe = catalog.lookup("Iron_Pickaxe")
    assert pickaxe.display_name == "Iron Pickaxe"
    assert pickaxe.is_resource is False
    assert pickaxe.recipe.ingredients == (("iron_ingot", 3), ("stick", 2))
    assert catalog.lookup("diamond").is_resource is True
    assert catalog.lookup("unobtainium") is None
    assert len(catalog) > 40


def test_resource_flag_overrides_recipe() -> None:
    planks = StaticItemCatalog.from_file().lookup("oak_planks")
    assert planks.is_resource is True
    assert planks.has_recipe is True


def test_search_matches_name_and_display_name() -> None:
    catalog = StaticItemCatalog.from_file()

    names = [item.name for item in catalog.search("pickaxe", limit=3)]
    assert len(names) == 3
    assert all("pickaxe" in name for name in names)
    assert [item.name for item in catalog.search("Block of")] == ["iron_block"]


def test_catalog_path_env(monkeypatch, tmp_path) -> None:
    data = {"items": {"widget": {"display_name": "Widget"}}}
    path = tmp_path / "items.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    monkeypatch.setenv("CATALOG_PATH", str(path))
    monkeypatch.delenv("CATALOG_URL", raising=False)

    catalog = load_catalog()

    assert isinstance(catalog, StaticItemCatalog)
    assert catalog.lookup("widget").display_name == "Widget"


def test_catalog_url_selects_http_client(monkeypatch) -> None:
    monkeypatch.setenv("CATALOG_URL", "http://catalog.local/")
    catalog = load_catalog()
    assert isinstance(catalog, HttpItemCatalog)
    assert catalog.base_url == "http://catalog.local"


def test_payload_accepts_dict_ingredients() -> None:
    item = item_from_payload(
        "torch",
        {"recipe": {"output": 4, "ingredients": [{"item": "coal", "qty": 1}, {"item": "stick"}]}},
    )
    assert item.display_name == "Torch"
    assert item.recipe.output_count == 4
    assert item.recipe.ingredients == (("coal", 1), ("stick", 1))


def _response(status_code: int, payload=None):
    def raise_for_status():
        if status_code >= 400:
            raise requests.HTTPError(f"{status_code} error")

    return SimpleNamespace(
        status_code=status_code,
        json=lambda: payload,
        raise_for_status=raise_for_status,
    )


def test_http_lookup_caches_found_items_only(monkeypatch) -> None:
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params, timeout))
        if url.endswith("/items/stick"):
            return _response(
                200,
                {"display_name": "Stick", "recipe": {"output": 4, "ingredients": [["oak_planks", 2]]}},
            )
        return _response(404)

    monkeypatch.setattr("catalog.remote.requests.get", fake_get)
    catalog = HttpItemCatalog(base_url="http://catalog.local", timeout=3)

    assert catalog.lookup("stick").recipe.output_count == 4
    assert catalog.lookup("stick").display_name == "Stick"
    assert catalog.lookup("nothing") is None
    assert catalog.lookup("nothing") is None
    assert calls == [
        ("http://catalog.local/items/stick", None, 3),
        ("http://catalog.local/items/nothing", None, 3),
        ("http://catalog.local/items/nothing", None, 3),
    ]
    assert catalog.cache_info().currsize == 1


def test_http_lookup_cache_is_bounded(monkeypatch) -> None:
    def fake_get(url, params=None, timeout=None):
        name = url.rsplit("/", 1)[-1]
        if name.startswith("item_"):
            return _response(200, {"display_name": name, "resource": True})
        return _response(404)

    monkeypatch.setattr("catalog.remote.requests.get", fake_get)
    catalog = HttpItemCatalog(base_url="http://catalog.local", cache_size=4)

    for index in range(50):
        assert catalog.lookup(f"item_{index}") is not None
        assert catalog.lookup(f"unknown_{index}") is None

    info = catalog.cache_info()
    assert info.currsize == 4
    assert info.maxsize == 4


def test_http_search(monkeypatch) -> None:
    def fake_get(url, params=None, timeout=None):
        assert params == {"q": "ingot", "limit": 5}
        return _response(200, {"items": [{"name": "iron_ingot"}, {"name": "gold_ingot"}, {}]})

    monkeypatch.setattr("catalog.remote.requests.get", fake_get)

    results = HttpItemCatalog(base_url="http://catalog.local").search("ingot", limit=5)

    assert [item.name for item in results] == ["iron_ingot", "gold_ingot"]


def test_http_failures_raise_catalog_error(monkeypatch) -> None:
    def unreachable(url, params=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("catalog.remote.requests.get", unreachable)
    with pytest.raises(CatalogError):
        HttpItemCatalog(base_url="http://catalog.local").lookup("stick")

    monkeypatch.setattr(
        "catalog.remote.requests.get", lambda url, params=None, timeout=None: _response(500)
    )
    with pytest.raises(CatalogError):
        HttpItemCatalog(base_url="http://catalog.local").lookup("stick")
