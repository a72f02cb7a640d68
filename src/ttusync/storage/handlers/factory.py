"""
Handler factory -- one implementation per backend kind.

Each kind maps to a store factory that unlocks the bound storage source
and builds the matching file store. Cloud drives are served by store
factories the application registers; this package ships none.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from ...errors import BackendUnavailableError, ConfigurationError
from ..models import RemoteContext, StorageKey, WebDavContext, is_fs_handle, is_remote_context
from ..registry import StorageSourceRegistry
from ..stores.base import FileStore
from ..stores.local import LocalDirectoryStore
from ..stores.webdav import WebDavStore
from ..unlock import StorageUnlocker
from .base import HandlerSettings
from .filetree import FileTreeHandler, StoreFactory

logger = logging.getLogger("ttusync.storage.handlers.factory")

DriveStoreFactory = Callable[[RemoteContext, HandlerSettings], Awaitable[FileStore]]


def _require_source_name(kind: StorageKey, settings: HandlerSettings) -> str:
    if not settings.storage_source_name:
        raise ConfigurationError(f"No storage source selected for {kind.value}")
    return settings.storage_source_name


def _fs_store_factory(unlocker: StorageUnlocker) -> StoreFactory:
    async def factory(settings: HandlerSettings) -> FileStore:
        name = _require_source_name(StorageKey.FS, settings)
        action = await unlocker.get_unlocked_storage_source_data(name, settings.ask_for_storage_unlock)
        if not is_fs_handle(action.data):
            raise ConfigurationError(f"Storage source {name} is not a directory")
        directory = Path(action.data.directory_handle).expanduser()
        if not directory.is_dir():
            raise BackendUnavailableError(f"Directory {action.data.fs_path} is not available")
        return LocalDirectoryStore(directory, create=False)

    return factory


def _webdav_store_factory(
    unlocker: StorageUnlocker,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport],
) -> StoreFactory:
    async def factory(settings: HandlerSettings) -> FileStore:
        name = _require_source_name(StorageKey.WEBDAV, settings)
        action = await unlocker.get_unlocked_storage_source_data(name, settings.ask_for_storage_unlock)
        if not isinstance(action.data, WebDavContext):
            raise ConfigurationError(f"Storage source {name} does not hold WebDAV credentials")
        logger.debug("Opening WebDAV connection to %s", action.data.url)
        return WebDavStore(action.data, timeout=timeout, transport=transport)

    return factory


def _drive_store_factory(
    kind: StorageKey,
    unlocker: StorageUnlocker,
    drive_stores: Mapping[StorageKey, DriveStoreFactory],
) -> StoreFactory:
    async def factory(settings: HandlerSettings) -> FileStore:
        build = drive_stores.get(kind)
        if build is None:
            raise BackendUnavailableError(f"No {kind.value} transport is registered")
        name = _require_source_name(kind, settings)
        action = await unlocker.get_unlocked_storage_source_data(name, settings.ask_for_storage_unlock)
        if not is_remote_context(action.data):
            raise ConfigurationError(f"Storage source {name} does not hold {kind.value} credentials")
        return await build(action.data, settings)

    return factory


def _browser_store_factory(library_dir: Path) -> StoreFactory:
    async def factory(settings: HandlerSettings) -> FileStore:
        return LocalDirectoryStore(library_dir)

    return factory


def create_handler(
    kind: StorageKey,
    unlocker: StorageUnlocker,
    settings: Optional[HandlerSettings] = None,
    *,
    library_dir: Optional[Path] = None,
    webdav_timeout: float = 30.0,
    webdav_transport: Optional[httpx.AsyncBaseTransport] = None,
    drive_stores: Optional[Mapping[StorageKey, DriveStoreFactory]] = None,
) -> FileTreeHandler:
    """Build the replication handler for a backend kind.

    Args:
        kind: Backend kind.
        unlocker: Used to unlock the bound source on first use.
        settings: Initial handler settings.
        library_dir: Root of the in-app library (browser kind).
        webdav_timeout: Request timeout for WebDAV.
        webdav_transport: httpx transport override for WebDAV.
        drive_stores: Store factories for cloud drive kinds.

    Raises:
        ConfigurationError: If the kind has no implementation.
    """
    drive_stores = drive_stores or {}
    factories: dict[StorageKey, Callable[[], StoreFactory]] = {
        StorageKey.FS: lambda: _fs_store_factory(unlocker),
        StorageKey.WEBDAV: lambda: _webdav_store_factory(unlocker, webdav_timeout, webdav_transport),
        StorageKey.GDRIVE: lambda: _drive_store_factory(StorageKey.GDRIVE, unlocker, drive_stores),
        StorageKey.ONEDRIVE: lambda: _drive_store_factory(StorageKey.ONEDRIVE, unlocker, drive_stores),
    }
    if library_dir is not None:
        factories[StorageKey.BROWSER] = lambda: _browser_store_factory(library_dir)

    build = factories.get(kind)
    if build is None:
        raise ConfigurationError(f"Unsupported storage kind: {kind.value}")
    return FileTreeHandler(kind, build(), settings)


def create_active_handler(
    registry: StorageSourceRegistry,
    unlocker: StorageUnlocker,
    settings: Optional[HandlerSettings] = None,
    **kwargs,
) -> FileTreeHandler:
    """Handler for the currently selected backend, bound to its active source."""
    kind = registry.storage_source
    settings = (settings or HandlerSettings()).model_copy(
        update={"storage_source_name": registry.get_active_source(kind)}
    )
    return create_handler(kind, unlocker, settings, **kwargs)
