"""
Unlock coordinator -- from a named storage source to usable credentials.

Order of attempts for one unlock:

    1. Filesystem sources carry a live directory handle: returned as-is.
    2. Encrypted sources registered with the credential manager: the
       stored secret is tried silently.
    3. Sources holding unencrypted credentials: returned as-is.
    4. Otherwise, if the caller allows it, the reader is prompted once.
       A rejected stored secret is mentioned in the prompt description.

Concurrent unlocks of the same source are not deduplicated; callers
cache the connection they build from the result, not the result itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..errors import AuthenticationError, ConfigurationError, SourceNotFoundError, UnlockFailedError
from .credential_store import CredentialStore
from .crypto import decrypt_source_data
from .database import StorageSourceRepository
from .models import (
    StorageKey,
    StorageSource,
    StorageUnlockAction,
    is_fs_handle,
    is_unencrypted_data,
)
from .prompt import UnlockPrompt, UnlockProps

logger = logging.getLogger("ttusync.storage.unlock")

UNLOCK_DESCRIPTION = "You are trying to access protected data"
INVALID_CREDENTIALS_SUFFIX = " but the provided Credentials were invalid"


class StorageUnlocker:
    """Turns storage source names into unlocked credentials.

    Args:
        repository: Where StorageSource records are looked up.
        credential_store: OS credential manager, tried before prompting.
        prompt: Interactive collaborator. Without one, unlocks that need
            the reader fail instead.
    """

    def __init__(
        self,
        repository: StorageSourceRepository,
        credential_store: Optional[CredentialStore] = None,
        prompt: Optional[UnlockPrompt] = None,
    ) -> None:
        self.repository = repository
        self.credential_store = credential_store
        self.prompt = prompt

    async def get_storage_source_data(self, name: str) -> StorageSource:
        """Fetch a source record.

        Raises:
            SourceNotFoundError: If no source exists under that name.
        """
        storage_source = await self.repository.get(name)
        if not storage_source:
            raise SourceNotFoundError(name)
        return storage_source

    async def _unlock_from_manager(
        self, storage_source: StorageSource
    ) -> tuple[Optional[StorageUnlockAction], bool]:
        """Try the secret stored in the credential manager.

        Returns:
            The unlock result (or None) and whether a stored secret was
            rejected.
        """
        if self.credential_store is None:
            return None, False

        credential = await self.credential_store.get(storage_source.name)
        if not credential or not credential.password:
            return None, False

        try:
            data = await asyncio.to_thread(
                decrypt_source_data, storage_source.data, credential.password
            )
        except AuthenticationError as exc:
            logger.error(
                "Error decrypting Data with Credential %s: %s", credential.id, exc
            )
            return None, True

        return StorageUnlockAction(data=data, secret=credential.password), False

    async def unlock_storage_data(
        self,
        storage_source: StorageSource,
        unlock_description: str,
        unlock_props: Optional[UnlockProps] = None,
    ) -> Optional[StorageUnlockAction]:
        """Run the unlock sequence for one source.

        Args:
            storage_source: The record to unlock.
            unlock_description: Text shown if the reader is prompted.
            unlock_props: Prompt parameters. None disables prompting.

        Returns:
            The unlocked credentials, or None if every path failed.

        Raises:
            ConfigurationError: A filesystem source without a handle.
        """
        description = unlock_description

        if storage_source.type == StorageKey.FS:
            if not is_fs_handle(storage_source.data):
                raise ConfigurationError(
                    f"Filesystem source {storage_source.name} has no directory handle"
                )
            return StorageUnlockAction(data=storage_source.data)

        unlock_result: Optional[StorageUnlockAction] = None

        if storage_source.stored_in_manager and storage_source.encrypted:
            unlock_result, rejected = await self._unlock_from_manager(storage_source)
            if rejected:
                description += INVALID_CREDENTIALS_SUFFIX
        elif is_unencrypted_data(storage_source.data):
            unlock_result = StorageUnlockAction(data=storage_source.data)

        if unlock_result is None and unlock_props is not None and self.prompt is not None:
            logger.debug("Prompting to unlock %s", storage_source.name)
            unlock_result = await self.prompt(description, unlock_props)

        return unlock_result

    async def get_unlocked_storage_source_data(
        self, name: str, ask_for_storage_unlock: bool
    ) -> StorageUnlockAction:
        """Unlock a source by name.

        Args:
            name: Storage source name.
            ask_for_storage_unlock: Whether the reader may be prompted.

        Raises:
            SourceNotFoundError: If no source exists under that name.
            UnlockFailedError: If no usable credentials came back.
        """
        storage_source = await self.get_storage_source_data(name)

        unlock_props = None
        if ask_for_storage_unlock:
            unlock_props = UnlockProps(
                action=(
                    f"Enter the correct password for {name} and login to your "
                    "account if required to proceed"
                ),
                encrypted_data=storage_source.data,
                forward_secret=True,
            )

        unlock_result = await self.unlock_storage_data(
            storage_source, UNLOCK_DESCRIPTION, unlock_props
        )
        if not unlock_result:
            raise UnlockFailedError(f"Unable to unlock required data for {name}")
        return unlock_result
