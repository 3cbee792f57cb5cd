"""Tests for the local binary file cache."""

from datetime import datetime, timezone

import pytest

from jobstore.models.binary import BinaryInfo
from jobstore.models.enums import BinaryType
from jobstore.services.cache import LocalFileCache, binary_cache_key


def test_cache_key_format(jar_info):
    assert binary_cache_key(jar_info) == "app1-20261018_101502_123.jar"


def test_cache_key_pads_milliseconds():
    info = BinaryInfo(
        app_name="py",
        binary_type=BinaryType.EGG,
        upload_time=datetime(2026, 1, 2, 3, 4, 5, 7000, tzinfo=timezone.utc),
    )
    assert binary_cache_key(info) == "py-20260102_030405_007.egg"


def test_put_then_read(tmp_path):
    cache = LocalFileCache(tmp_path / "cache")
    key = "app-20260101_000000_000.jar"
    assert not cache.exists(key)

    path = cache.put(key, b"content")

    assert cache.exists(key)
    assert path == cache.path(key)
    assert path.read_bytes() == b"content"


def test_put_overwrites_and_leaves_no_temp_files(tmp_path):
    cache = LocalFileCache(tmp_path)
    key = "app-20260101_000000_000.jar"
    cache.put(key, b"first")
    cache.put(key, b"second")

    assert cache.path(key).read_bytes() == b"second"
    assert [p.name for p in tmp_path.iterdir()] == [key]


def test_delete_removes_only_matching_app(tmp_path):
    cache = LocalFileCache(tmp_path)
    cache.put("app-20260101_000000_000.jar", b"a")
    cache.put("app-20260102_000000_000.egg", b"b")
    cache.put("app-v2-20260101_000000_000.jar", b"c")
    cache.put("other-20260101_000000_000.jar", b"d")

    removed = cache.delete("app")

    assert sorted(p.name for p in removed) == [
        "app-20260101_000000_000.jar",
        "app-20260102_000000_000.egg",
    ]
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "app-v2-20260101_000000_000.jar",
        "other-20260101_000000_000.jar",
    ]


def test_delete_missing_root_is_noop(tmp_path):
    cache = LocalFileCache(tmp_path / "missing")
    assert cache.delete("app") == []


@pytest.mark.parametrize("key", ["../app-20260101_000000_000.jar", "sub/app.jar", "..", ""])
def test_keys_outside_root_are_rejected(tmp_path, key):
    cache = LocalFileCache(tmp_path / "cache")
    with pytest.raises(ValueError):
        cache.put(key, b"content")
    assert not (tmp_path / "app-20260101_000000_000.jar").exists()


def test_discard_removes_single_entry(tmp_path):
    cache = LocalFileCache(tmp_path)
    cache.put("app-20260101_000000_000.jar", b"a")
    cache.put("app-20260102_000000_000.jar", b"b")

    assert cache.discard("app-20260101_000000_000.jar") is True
    assert cache.discard("app-20260101_000000_000.jar") is False
    assert [p.name for p in tmp_path.iterdir()] == ["app-20260102_000000_000.jar"]
