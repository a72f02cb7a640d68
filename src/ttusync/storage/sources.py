"""
Storage source management -- create, rename, and delete named sources.

Secrets supplied here are used once to encrypt the source data and,
if the reader asks for it, registered with the credential manager.
They are never written to the repository.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..errors import ConfigurationError, SourceNotFoundError
from .credential_store import KeyringCredentialStore
from .crypto import encrypt_source_data
from .database import StorageSourceRepository
from .models import (
    StorageKey,
    StorageSource,
    StorageSourceSaveResult,
    StorageSourceUnencryptedData,
)
from .registry import StorageSourceRegistry, is_default_source

logger = logging.getLogger("ttusync.storage.sources")


class StorageSourceManager:
    """CRUD over storage sources that keeps the registry in step.

    Args:
        repository: Where records are stored.
        registry: Active-source pointers to update on rename/delete.
        credential_store: Keyring used when a secret should be remembered.
    """

    def __init__(
        self,
        repository: StorageSourceRepository,
        registry: StorageSourceRegistry,
        credential_store: Optional[KeyringCredentialStore] = None,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.credential_store = credential_store

    async def save_storage_source(
        self,
        name: str,
        kind: StorageKey,
        data: StorageSourceUnencryptedData,
        secret: Optional[str] = None,
        store_in_manager: bool = False,
        old_name: Optional[str] = None,
    ) -> StorageSourceSaveResult:
        """Create or update a storage source.

        Args:
            name: Name to save under.
            kind: Backend kind.
            data: Unencrypted credentials (or directory handle).
            secret: Password to encrypt the data with. Ignored for
                filesystem sources, which are never encrypted.
            store_in_manager: Register ``secret`` with the credential
                manager so unlocking does not prompt.
            old_name: Previous name when renaming.

        Raises:
            ConfigurationError: Empty name, renaming a reserved source,
                asking to store a secret that was not given, or WebDAV
                credentials without a secret.
        """
        name = name.strip()
        if not name:
            raise ConfigurationError("Storage source name must not be empty")
        if old_name and old_name != name and is_default_source(old_name):
            raise ConfigurationError(f"{old_name} is a default source and cannot be renamed")
        if store_in_manager and not secret:
            raise ConfigurationError("A secret is required to store credentials in the manager")
        if kind == StorageKey.WEBDAV and not secret:
            raise ConfigurationError("A secret is required to encrypt WebDAV credentials")

        previous = await self.repository.get(name)
        renamed = await self.repository.get(old_name) if old_name and old_name != name else None

        encrypt = bool(secret) and kind != StorageKey.FS
        stored: StorageSource = StorageSource(
            name=name,
            type=kind,
            data=(
                await asyncio.to_thread(encrypt_source_data, data, secret)
                if encrypt
                else data
            ),
            stored_in_manager=encrypt and store_in_manager,
        )

        await self.repository.put(stored)

        if self.credential_store is not None:
            if stored.stored_in_manager:
                await self.credential_store.store(name, secret)
            elif previous is not None and previous.stored_in_manager:
                await self.credential_store.remove(name)

        old: Optional[str] = None
        if old_name and old_name != name:
            old = old_name
            await self.repository.delete(old_name)
            if self.credential_store is not None:
                await self.credential_store.remove(old_name)
            old_kind = renamed.type if renamed is not None else kind
            if self.registry.get_active_source(old_kind) == old_name:
                if old_kind != kind:
                    self.registry.set_active_source("", old_kind)
                self.registry.set_active_source(name, kind)
            logger.info("Renamed storage source %s to %s", old_name, name)
        else:
            logger.info("Saved storage source %s (%s)", name, kind.value)

        return StorageSourceSaveResult(new=stored, old=old)

    async def delete_storage_source(self, name: str) -> StorageSource:
        """Delete a storage source and any pointer referencing it.

        Raises:
            ConfigurationError: For default/internal sources.
            SourceNotFoundError: If no such source exists.
        """
        if is_default_source(name):
            raise ConfigurationError(f"{name} is a default source and cannot be deleted")

        source = await self.repository.get(name)
        if source is None:
            raise SourceNotFoundError(name)

        await self.repository.delete(name)
        if source.stored_in_manager and self.credential_store is not None:
            await self.credential_store.remove(name)

        reset = self.registry.forget(name)
        logger.info(
            "Deleted storage source %s%s",
            name,
            f" (reset {', '.join(k.value for k in reset)})" if reset else "",
        )
        return source

    async def list_storage_sources(
        self, kind: Optional[StorageKey] = None
    ) -> list[StorageSource]:
        """All sources, optionally restricted to one kind, sorted by name."""
        sources = await self.repository.list()
        if kind is not None:
            sources = [s for s in sources if s.type == kind]
        return sorted(sources, key=lambda s: s.name)
