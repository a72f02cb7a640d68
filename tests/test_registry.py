"""Tests for the storage source registry.

Covers:
- Per-kind defaults for cloud drives
- Empty filesystem pointer resets the selected backend
- Reserved names
- Forgetting a deleted source
- Config round trip
"""

from __future__ import annotations

import pytest

from ttusync.storage.models import StorageKey, StorageSourceDefault
from ttusync.storage.registry import StorageSourceRegistry, is_default_source


class TestDefaults:
    """Initial state and fallbacks."""

    def test_initial_pointers(self):
        """Cloud kinds start on their defaults, others empty."""
        registry = StorageSourceRegistry()
        assert registry.storage_source == StorageKey.BROWSER
        assert registry.get_active_source(StorageKey.GDRIVE) == "gdrive-default"
        assert registry.get_active_source(StorageKey.ONEDRIVE) == "onedrive-default"
        assert registry.get_active_source(StorageKey.WEBDAV) == ""
        assert registry.get_active_source(StorageKey.FS) == ""

    @pytest.mark.parametrize(
        "kind, default",
        [
            (StorageKey.GDRIVE, StorageSourceDefault.GDRIVE_DEFAULT.value),
            (StorageKey.ONEDRIVE, StorageSourceDefault.ONEDRIVE_DEFAULT.value),
        ],
    )
    def test_empty_name_falls_back(self, kind, default):
        """Setting an empty name restores the kind's default."""
        registry = StorageSourceRegistry()
        registry.set_active_source("my-drive", kind)
        assert registry.get_active_source(kind) == "my-drive"
        registry.set_active_source("", kind)
        assert registry.get_active_source(kind) == default

    def test_empty_fs_resets_backend(self):
        """Clearing the folder source drops back to the browser library."""
        registry = StorageSourceRegistry(storage_source=StorageKey.FS)
        registry.set_active_source("books", StorageKey.FS)
        registry.set_active_source("", StorageKey.FS)
        assert registry.get_active_source(StorageKey.FS) == ""
        assert registry.storage_source == StorageKey.BROWSER

    def test_empty_webdav_keeps_backend(self):
        """Only the filesystem kind resets the selected backend."""
        registry = StorageSourceRegistry(storage_source=StorageKey.WEBDAV)
        registry.set_active_source("", StorageKey.WEBDAV)
        assert registry.storage_source == StorageKey.WEBDAV

    def test_browser_has_no_pointer(self):
        """The browser kind ignores pointer updates."""
        registry = StorageSourceRegistry()
        registry.set_active_source("anything", StorageKey.BROWSER)
        assert registry.get_active_source(StorageKey.BROWSER) == ""


class TestIsDefaultSource:
    """Reserved names."""

    @pytest.mark.parametrize(
        "name", ["gdrive-default", "onedrive-default", "__internal_browser__", "__internal_fs__"]
    )
    def test_reserved(self, name):
        assert is_default_source(name)

    @pytest.mark.parametrize("name", ["", "nas", "gdrive", "Gdrive-Default"])
    def test_not_reserved(self, name):
        assert not is_default_source(name)


class TestForget:
    """Resetting pointers to a deleted source."""

    def test_forget_resets_matching_kinds(self):
        """Only pointers naming the source are reset."""
        registry = StorageSourceRegistry()
        registry.set_active_source("nas", StorageKey.WEBDAV)
        registry.set_active_source("work", StorageKey.GDRIVE)

        reset = registry.forget("nas")

        assert reset == [StorageKey.WEBDAV]
        assert registry.get_active_source(StorageKey.WEBDAV) == ""
        assert registry.get_active_source(StorageKey.GDRIVE) == "work"

    def test_forget_unknown(self):
        """Forgetting an unreferenced name changes nothing."""
        registry = StorageSourceRegistry()
        assert registry.forget("ghost") == []


class TestConfig:
    """Plain-data persistence."""

    def test_round_trip(self):
        """from_config restores to_config output."""
        registry = StorageSourceRegistry(storage_source=StorageKey.WEBDAV)
        registry.set_active_source("nas", StorageKey.WEBDAV)
        registry.set_active_source("folder", StorageKey.FS)

        restored = StorageSourceRegistry.from_config(registry.to_config())

        assert restored.storage_source == StorageKey.WEBDAV
        assert restored.get_active_source(StorageKey.WEBDAV) == "nas"
        assert restored.get_active_source(StorageKey.FS) == "folder"
        assert restored.get_active_source(StorageKey.GDRIVE) == "gdrive-default"

    def test_round_trip_without_folder(self):
        """An unset folder pointer does not reset the selected backend."""
        registry = StorageSourceRegistry(storage_source=StorageKey.WEBDAV)
        registry.set_active_source("nas", StorageKey.WEBDAV)

        restored = StorageSourceRegistry.from_config(registry.to_config())

        assert restored.storage_source == StorageKey.WEBDAV
        assert restored.get_active_source(StorageKey.FS) == ""

    def test_constructor_keeps_backend(self):
        """Initial pointers are assigned without side effects."""
        registry = StorageSourceRegistry(
            storage_source=StorageKey.GDRIVE, pointers={StorageKey.FS: "", StorageKey.GDRIVE: ""}
        )
        assert registry.storage_source == StorageKey.GDRIVE
        assert registry.get_active_source(StorageKey.GDRIVE) == "gdrive-default"

    def test_empty_config(self):
        """None or {} yields a fresh registry."""
        assert StorageSourceRegistry.from_config(None).storage_source == StorageKey.BROWSER
        assert StorageSourceRegistry.from_config({}).get_active_source(StorageKey.ONEDRIVE) == "onedrive-default"

    def test_unknown_values_ignored(self):
        """Unknown kinds are skipped with a warning."""
        restored = StorageSourceRegistry.from_config(
            {"storage_source": "ftp", "pointers": {"ftp": "x", "webdav": "nas"}}
        )
        assert restored.storage_source == StorageKey.BROWSER
        assert restored.get_active_source(StorageKey.WEBDAV) == "nas"
