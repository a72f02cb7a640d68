"""Tests for listing normalization and the local directory store."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from ttusync.errors import BackendUnavailableError
from ttusync.storage.stores import LocalDirectoryStore, RemoteEntry, normalize_listing


class TestNormalizeListing:
    """Listings arrive in several shapes."""

    def test_bare_list(self):
        entries = normalize_listing([RemoteEntry(name="a.epub"), {"name": "b.epub", "size": 3}])
        assert [(e.name, e.size) for e in entries] == [("a.epub", 0), ("b.epub", 3)]

    def test_dict_wrappers(self):
        assert [e.name for e in normalize_listing({"data": [{"name": "a"}]})] == ["a"]
        assert [e.name for e in normalize_listing({"entries": [{"basename": "b"}]})] == ["b"]

    def test_object_wrappers(self):
        assert [e.name for e in normalize_listing(SimpleNamespace(data=[{"name": "a"}]))] == ["a"]
        assert [e.name for e in normalize_listing(SimpleNamespace(entries=[{"filename": "b"}]))] == ["b"]

    def test_directory_type(self):
        (entry,) = normalize_listing([{"name": ".ttu", "type": "directory"}])
        assert entry.is_dir
        assert entry.hidden

    def test_empty(self):
        assert normalize_listing(None) == []
        assert normalize_listing({}) == []

    def test_garbage_entry(self):
        with pytest.raises(TypeError):
            normalize_listing([42])


class TestLocalDirectoryStore:
    @pytest.mark.asyncio
    async def test_write_read_list(self, tmp_path):
        store = LocalDirectoryStore(tmp_path / "root")
        await store.write(".ttu/b/progress_1.json", b"{}")
        assert await store.read(".ttu/b/progress_1.json") == b"{}"
        entries = await store.list_entries(".ttu")
        assert [(e.name, e.is_dir) for e in entries] == [("b", True)]

    @pytest.mark.asyncio
    async def test_missing(self, tmp_path):
        store = LocalDirectoryStore(tmp_path)
        assert await store.list_entries("nope") == []
        assert await store.read("nope") is None
        assert await store.delete("nope") is False

    @pytest.mark.asyncio
    async def test_delete_directory(self, tmp_path):
        store = LocalDirectoryStore(tmp_path)
        await store.write("d/x", b"1")
        assert await store.delete("d") is True
        assert not (tmp_path / "d").exists()

    @pytest.mark.asyncio
    async def test_path_escape(self, tmp_path):
        store = LocalDirectoryStore(tmp_path / "root")
        with pytest.raises(BackendUnavailableError):
            await store.read("../outside")
