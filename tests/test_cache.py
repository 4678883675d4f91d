"""Tests for cache path mapping and response fan-out."""

import io
from pathlib import Path

import pytest

from imagegate.cache import CacheWriter, FanOutWriter
from imagegate.errors import CacheDirError, InvalidPathError


def test_fan_out_writer_duplicates_writes():
    first, second = io.BytesIO(), io.BytesIO()
    writer = FanOutWriter(first, second)

    assert writer.write(b"abc") == 3
    writer.write(b"def")

    assert first.getvalue() == second.getvalue() == b"abcdef"


def test_path_for_joins_request_path_under_root(tmp_path):
    cache = CacheWriter(tmp_path)

    assert cache.path_for("/a/b/pic__10x10.png") == tmp_path / "a" / "b" / "pic__10x10.png"


@pytest.mark.parametrize("request_path", ["/../outside.png", "/a/../../etc/passwd", "/"])
def test_path_for_rejects_paths_outside_root(tmp_path, request_path):
    cache = CacheWriter(tmp_path / "cache")

    with pytest.raises(InvalidPathError):
        cache.path_for(request_path)


def test_open_mirrors_bytes_into_cache_file(tmp_path):
    cache = CacheWriter(tmp_path)
    response = io.BytesIO()

    with cache.open("/folder/deep/pic.png", response) as writer:
        writer.write(b"image-bytes")

    cached = tmp_path / "folder" / "deep" / "pic.png"
    assert response.getvalue() == b"image-bytes"
    assert cached.read_bytes() == b"image-bytes"
    assert cached.stat().st_mode & 0o777 == 0o644


def test_open_overwrites_existing_entry(tmp_path):
    cache = CacheWriter(tmp_path)
    target = tmp_path / "pic.png"
    target.write_bytes(b"old")

    with cache.open("/pic.png", io.BytesIO()) as writer:
        writer.write(b"new")

    assert target.read_bytes() == b"new"


def test_open_discards_partial_file_on_error(tmp_path):
    cache = CacheWriter(tmp_path)

    with pytest.raises(RuntimeError):
        with cache.open("/pic.png", io.BytesIO()) as writer:
            writer.write(b"partial")
            raise RuntimeError("encoder exploded")

    assert list(Path(tmp_path).iterdir()) == []


def test_open_raises_cache_dir_error_when_folder_cannot_be_created(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_bytes(b"a file where a folder should be")
    cache = CacheWriter(tmp_path)

    with pytest.raises(CacheDirError, match="can not make cache folder"):
        with cache.open("/blocked/pic.png", io.BytesIO()):
            pass


def test_open_serves_response_when_entry_path_is_a_folder(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "b.png").write_bytes(b"child")
    cache = CacheWriter(tmp_path)
    response = io.BytesIO()

    with cache.open("/a", response) as writer:
        writer.write(b"parent")

    assert response.getvalue() == b"parent"
    assert sorted(entry.name for entry in tmp_path.iterdir()) == ["a"]
    assert [entry.name for entry in (tmp_path / "a").iterdir()] == ["b.png"]
