import asyncio
import json

import pytest
from mcp.server.fastmcp import FastMCP

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.store import CacheStore
from catalog_cache.providers.catalog_api import CatalogApiClient
from catalog_cache.services.base import ServiceContext
from catalog_cache.services.cache_admin_service import CacheAdminService
from catalog_cache.services.invalidation import invalidate_on_mutation
from catalog_cache.tools.registry import build_tool_services, register_all_tools


class _FakeResponse:
    def __init__(self, body: object) -> None:
        self.status_code = 200
        self.ok = True
        self.headers = {}
        self.text = json.dumps(body)


class _FakeSession:
    def __init__(self) -> None:
        self.calls = 0

    def get(self, url: str, params=None, timeout=None, headers=None):
        self.calls += 1
        return _FakeResponse({"success": True, "data": [{"slug": f"svc-{self.calls}"}]})


def _populated_store() -> CacheStore:
    store = CacheStore()
    for category in CacheCategory:
        store.set(category, "x", {"category": category.value})
    return store


def _tool(mcp: FastMCP, name: str):
    return mcp._tool_manager.get_tool(name).fn


def test_all_cache_tools_are_registered() -> None:
    mcp = FastMCP(name="test-cache-tools")
    register_all_tools(mcp, build_tool_services(ServiceContext(store=CacheStore())))
    names = {tool.name for tool in asyncio.run(mcp.list_tools())}
    assert names == {
        "get_cache_stats",
        "get_cache_hit_rate",
        "list_cache_entries",
        "clear_cache",
        "invalidate_cache_category",
        "invalidate_after_mutation",
        "reset_cache_stats",
        "sweep_cache",
        "warm_cache",
    }


def test_stats_tool_reports_snapshot_as_json() -> None:
    store = _populated_store()
    store.get(CacheCategory.DETAIL, "x")
    store.get(CacheCategory.DETAIL, "missing")
    mcp = FastMCP(name="test-cache-stats")
    register_all_tools(mcp, build_tool_services(ServiceContext(store=store)))

    payload = json.loads(_tool(mcp, "get_cache_stats")())
    assert payload["hits"] == 1
    assert payload["misses"] == 1
    assert payload["entry_count"] == 5
    assert payload["hit_rate"] == 0.5
    assert payload["efficiency"] == "medium"
    assert payload["sweep_running"] is False

    text = _tool(mcp, "get_cache_hit_rate")()
    assert "hit_rate: 50.0%" in text


def test_clear_and_invalidate_tools(capsys) -> None:
    store = _populated_store()
    mcp = FastMCP(name="test-cache-clear")
    register_all_tools(mcp, build_tool_services(ServiceContext(store=store)))

    output = _tool(mcp, "invalidate_cache_category")("search")
    assert "removed: 1" in output
    output = _tool(mcp, "clear_cache")("DETAIL")
    assert "removed: 1" in output
    assert store.has(CacheCategory.LIST, "x") is True

    event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert event["tool"] == "clear_cache"
    assert event["removed"] == 1
    assert event["pattern"] == "DETAIL"

    with pytest.raises(ValueError):
        _tool(mcp, "invalidate_cache_category")("unknown")


def test_invalidate_on_mutation_targets() -> None:
    store = _populated_store()
    assert invalidate_on_mutation(store, "featured") == 1
    assert store.has(CacheCategory.FEATURED, "x") is False
    assert invalidate_on_mutation(store, "Category") == 2
    assert store.has(CacheCategory.BY_CATEGORY, "x") is False
    assert store.has(CacheCategory.LIST, "x") is False
    assert invalidate_on_mutation(store, "service") == 2
    assert len(store) == 0
    with pytest.raises(ValueError):
        invalidate_on_mutation(store, "pricing")


def test_admin_list_entries_respects_limit() -> None:
    store = _populated_store()
    for _ in range(3):
        store.get(CacheCategory.SEARCH, "x")
    admin = CacheAdminService(ServiceContext(store=store))
    entries = admin.list_entries(limit=2)
    assert len(entries) == 2
    assert entries[0].key == "SEARCH:x"
    assert entries[0].hits == 3


def test_warm_prefetches_featured_and_list_once() -> None:
    session = _FakeSession()
    store = CacheStore()
    ctx = ServiceContext(store=store, catalog_client=CatalogApiClient("http://catalog/api", session=session))
    admin = CacheAdminService(ctx)

    keys = asyncio.run(admin.warm())
    assert keys == ["FEATURED:featured", "LIST:{}"]
    assert store.get(CacheCategory.FEATURED, "featured") == [{"slug": "svc-1"}]
    assert store.get(CacheCategory.LIST, {}) == {"success": True, "data": [{"slug": "svc-2"}]}

    asyncio.run(admin.warm())
    assert session.calls == 2


def test_warm_without_client_is_a_no_op() -> None:
    admin = CacheAdminService(ServiceContext(store=CacheStore()))
    assert asyncio.run(admin.warm()) == []
