"""Tests for handler construction per backend kind."""

from __future__ import annotations

import shutil

import pytest

from ttusync.errors import (
    BackendUnavailableError,
    ConfigurationError,
    SourceNotFoundError,
)
from ttusync.models import BookData
from ttusync.storage.database import MemoryStorageSourceRepository
from ttusync.storage.handlers import HandlerSettings, create_active_handler, create_handler
from ttusync.storage.models import RemoteContext, StorageKey, StorageSource
from ttusync.storage.registry import StorageSourceRegistry
from ttusync.storage.stores.local import LocalDirectoryStore
from ttusync.storage.unlock import StorageUnlocker


def _unlocker(*sources):
    return StorageUnlocker(MemoryStorageSourceRepository(list(sources)))


def _settings(name):
    return HandlerSettings(storage_source_name=name, ask_for_storage_unlock=False)


class TestBrowser:
    def test_requires_library_dir(self):
        with pytest.raises(ConfigurationError, match="browser"):
            create_handler(StorageKey.BROWSER, _unlocker())

    @pytest.mark.asyncio
    async def test_library_dir(self, tmp_path):
        handler = create_handler(StorageKey.BROWSER, _unlocker(), library_dir=tmp_path / "library")
        await handler.save_book(BookData(title="Novel", last_book_modified=1))
        assert (tmp_path / "library" / ".ttu" / "Novel").is_dir()


class TestFilesystem:
    @pytest.mark.asyncio
    async def test_uses_picked_folder(self, fs_handle):
        source = StorageSource(name="folder", type=StorageKey.FS, data=fs_handle)
        handler = create_handler(StorageKey.FS, _unlocker(source), _settings("folder"))
        await handler.save_book(BookData(title="Novel", last_book_modified=1))
        assert (fs_handle.directory_handle / ".ttu" / "Novel").is_dir()

    @pytest.mark.asyncio
    async def test_folder_gone(self, fs_handle):
        source = StorageSource(name="folder", type=StorageKey.FS, data=fs_handle)
        shutil.rmtree(fs_handle.directory_handle)
        handler = create_handler(StorageKey.FS, _unlocker(source), _settings("folder"))
        with pytest.raises(BackendUnavailableError):
            await handler.get_book_list()

    @pytest.mark.asyncio
    async def test_no_source_selected(self):
        handler = create_handler(StorageKey.FS, _unlocker(), _settings(""))
        with pytest.raises(ConfigurationError):
            await handler.get_book_list()

    @pytest.mark.asyncio
    async def test_source_missing(self):
        handler = create_handler(StorageKey.FS, _unlocker(), _settings("ghost"))
        with pytest.raises(SourceNotFoundError):
            await handler.get_book_list()


class TestWebDav:
    @pytest.mark.asyncio
    async def test_wrong_credentials_kind(self):
        """A WebDAV source holding drive credentials is rejected."""
        source = StorageSource(
            name="nas", type=StorageKey.WEBDAV, data=RemoteContext(client_id="c", client_secret="s")
        )
        handler = create_handler(StorageKey.WEBDAV, _unlocker(source), _settings("nas"))
        with pytest.raises(ConfigurationError):
            await handler.get_book_list()


class TestDrives:
    @pytest.mark.asyncio
    async def test_unregistered_transport(self):
        source = StorageSource(
            name="gdrive-default", type=StorageKey.GDRIVE, data=RemoteContext(client_id="c", client_secret="s")
        )
        handler = create_handler(StorageKey.GDRIVE, _unlocker(source), _settings("gdrive-default"))
        with pytest.raises(BackendUnavailableError):
            await handler.get_book_list()

    @pytest.mark.asyncio
    async def test_registered_transport(self, tmp_path):
        """Applications plug drive transports in as store factories."""
        seen = []

        async def drive_store(context, settings):
            seen.append(context.client_id)
            return LocalDirectoryStore(tmp_path / "drive")

        source = StorageSource(
            name="work", type=StorageKey.ONEDRIVE, data=RemoteContext(client_id="cid", client_secret="s")
        )
        handler = create_handler(
            StorageKey.ONEDRIVE,
            _unlocker(source),
            _settings("work"),
            drive_stores={StorageKey.ONEDRIVE: drive_store},
        )
        await handler.save_book(BookData(title="Novel", last_book_modified=1))
        assert seen == ["cid"]
        assert (tmp_path / "drive" / ".ttu" / "Novel").is_dir()


class TestActiveHandler:
    def test_follows_registry(self):
        registry = StorageSourceRegistry(storage_source=StorageKey.WEBDAV)
        registry.set_active_source("nas", StorageKey.WEBDAV)

        handler = create_active_handler(registry, _unlocker(), HandlerSettings(cache_storage_data=True))

        assert handler.kind == StorageKey.WEBDAV
        assert handler.settings.storage_source_name == "nas"
        assert handler.settings.cache_storage_data is True
