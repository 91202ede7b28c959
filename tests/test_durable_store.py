import json

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.durable import (
    DurableStoreFull,
    JsonFileDurableStore,
    MemoryDurableStore,
    safe_get,
    safe_set,
)
from catalog_cache.cache.store import CacheStore


def test_memory_store_rejects_writes_past_capacity() -> None:
    store = MemoryDurableStore(max_bytes=20)
    store.set_item("a", "1234")
    result = safe_set(store, "b", "x" * 50)
    assert result.ok is False
    assert isinstance(result.error, DurableStoreFull)
    assert store.keys() == ["a"]
    assert safe_get(store, "a").value == "1234"


def test_json_file_store_round_trips_through_disk(tmp_path) -> None:
    path = tmp_path / "nested" / "cache.json"
    first = JsonFileDurableStore(path)
    first.set_item("k", "v")
    first.remove_item("missing")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    second = JsonFileDurableStore(path)
    assert second.get_item("k") == "v"
    second.remove_item("k")
    assert JsonFileDurableStore(path).keys() == []


def test_json_file_store_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "cache.json"
    path.write_text("{oops", encoding="utf-8")
    assert JsonFileDurableStore(path).keys() == []


def test_cache_entries_persist_across_process_restart(tmp_path) -> None:
    path = tmp_path / "cache.json"
    CacheStore(durable=JsonFileDurableStore(path)).set(CacheCategory.FEATURED, "featured", [{"slug": "seo"}])

    restarted = CacheStore(durable=JsonFileDurableStore(path))
    assert restarted.get(CacheCategory.FEATURED, "featured") == [{"slug": "seo"}]
