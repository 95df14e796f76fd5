"""Unit tests for starcharts.utils.cache_utils."""

import pytest

from starcharts.api.github_exceptions import CacheException
from starcharts.utils.cache_utils import CacheManager, FileCache, MemoryCache


def test_get_miss():
    assert CacheManager().get("nope") == (None, False)


def test_put_then_get_returns_copy():
    cache = CacheManager()
    value = {"full_name": "octo/hello", "stars": [1, 2]}
    cache.put("octo/hello", value)

    cached, found = cache.get("octo/hello")
    assert found
    assert cached == value
    cached["stars"].append(3)
    assert cache.get("octo/hello")[0]["stars"] == [1, 2]


def test_delete_missing_key_is_not_an_error():
    cache = CacheManager()
    cache.delete("nope")
    cache.put("k", "v")
    cache.delete("k")
    assert cache.get("k") == (None, False)


def test_unserializable_value_raises(metrics):
    cache = CacheManager(metrics_collector=metrics)
    with pytest.raises(CacheException):
        cache.put("k", object())
    assert metrics.get_metrics()["cache"]["errors"] == 1


def test_expired_entries_are_misses():
    cache = CacheManager(default_ttl=600)
    cache.put("k", "v", ttl=-1)
    assert cache.get("k") == (None, False)


def test_operations_are_counted(metrics):
    cache = CacheManager(metrics_collector=metrics)
    cache.put("k", "v")
    cache.get("k")
    cache.delete("k")

    counts = metrics.get_metrics()["cache"]
    assert (counts["puts"], counts["gets"], counts["deletes"]) == (1, 1, 1)


def test_lru_eviction():
    cache = MemoryCache(max_size=2)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.get("a")
    cache.put("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_unknown_backend_falls_back_to_memory(tmp_path):
    cache = CacheManager(backend="redis", cache_dir=tmp_path)
    assert isinstance(cache._cache, MemoryCache)
    assert list(tmp_path.iterdir()) == []


def test_file_backend_survives_a_new_manager(tmp_path):
    first = CacheManager(backend="file", cache_dir=tmp_path)
    first.put("octo/hello", {"stargazers_count": 150})
    first.put("octo/hello#etag", '"v1"')

    second = CacheManager(backend="file", cache_dir=tmp_path)

    assert second.get("octo/hello") == ({"stargazers_count": 150}, True)
    assert second.get("octo/hello#etag") == ('"v1"', True)
    assert len(second) == 2


def test_file_cache_expired_entry_is_removed(tmp_path):
    cache = FileCache(tmp_path)
    cache.put("k", '"v"', ttl=-1)

    assert cache.get("k") is None
    assert len(cache) == 0


def test_file_cache_corrupt_entry_is_a_miss(tmp_path):
    cache = FileCache(tmp_path)
    cache.put("k", '"v"')
    path = cache._path("k")
    path.write_text("{not json")

    assert cache.get("k") is None
    assert not path.exists()


def test_file_cache_remove_and_clear(tmp_path):
    cache = FileCache(tmp_path / "entries")
    cache.put("a", '"1"')
    cache.put("b", '"2"')

    assert cache.remove("a") is True
    assert cache.remove("a") is False
    cache.clear()

    assert len(cache) == 0
    assert cache.get("b") is None
    assert (tmp_path / "entries").is_dir()


def test_file_cache_write_failure_raises(tmp_path, metrics):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    cache = CacheManager(backend="file", cache_dir=tmp_path / "entries", metrics_collector=metrics)
    cache._cache.cache_dir = blocker

    with pytest.raises(CacheException):
        cache.put("k", "v")
    assert metrics.get_metrics()["cache"]["errors"] == 1


def test_unusable_cache_dir_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(CacheException):
        FileCache(blocker / "entries")
