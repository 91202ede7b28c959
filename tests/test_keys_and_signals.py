import pytest

from catalog_cache.cache.categories import CacheCategory, parse_category
from catalog_cache.cache.keys import category_of, make_key
from catalog_cache.cache.signals import UpstreamSignal


def test_make_key_sorts_filter_keys() -> None:
    first = make_key(CacheCategory.LIST, {"page": 2, "categoria": "seo", "activo": True})
    second = make_key(CacheCategory.LIST, {"activo": True, "page": 2, "categoria": "seo"})
    assert first == second
    assert first == 'LIST:{"activo":true,"categoria":"seo","page":2}'


def test_make_key_for_scalar_identifier() -> None:
    assert make_key(CacheCategory.DETAIL, "web-design") == "DETAIL:web-design"
    assert make_key(CacheCategory.DETAIL, {}) == "DETAIL:{}"


def test_make_key_rejects_other_identifier_types() -> None:
    with pytest.raises(TypeError):
        make_key(CacheCategory.DETAIL, 42)  # type: ignore[arg-type]


def test_category_of_key() -> None:
    assert category_of("BY_CATEGORY:{\"categoria\":\"seo\"}") is CacheCategory.BY_CATEGORY
    assert category_of("stats") is None


def test_parse_category_accepts_names_case_insensitively() -> None:
    assert parse_category(" search ") is CacheCategory.SEARCH
    assert parse_category(CacheCategory.LIST) is CacheCategory.LIST
    with pytest.raises(ValueError, match="Category must be one of"):
        parse_category("POSTS")


def test_signal_from_headers() -> None:
    assert UpstreamSignal.from_headers(None) == UpstreamSignal()
    assert UpstreamSignal.from_headers({"X-Cache-Status": "DESACTIVADO"}).disabled is True
    assert UpstreamSignal.from_headers({"cache-control": "private, no-store"}).disabled is True
    assert UpstreamSignal.from_headers({"Cache-Control": "max-age=60"}) == UpstreamSignal()
    assert UpstreamSignal.from_headers({"X-Cache-Invalidated": "true"}).invalidated is True
    assert UpstreamSignal.from_headers({"x-cache-response": "invalidated"}).invalidated is True


def test_consumed_signal_keeps_only_disabled_flag() -> None:
    signal = UpstreamSignal(invalidated=True, disabled=True)
    assert signal.consumed() == UpstreamSignal(invalidated=False, disabled=True)
