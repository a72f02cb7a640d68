"""
OS credential store access through ``keyring``.

The secret that encrypts a storage source can be registered with the
operating system's credential manager, so unlocking works without a
prompt. Lookups never fail loudly: any keyring error is logged and
treated as "no credential".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import BaseModel

logger = logging.getLogger("ttusync.storage.credential_store")

DEFAULT_KEYRING_SERVICE = "ttusync"


class PasswordCredential(BaseModel):
    """A password retrieved from the credential manager."""

    id: str
    password: str


class CredentialStore(Protocol):
    """Read access to the OS credential store, keyed by source name."""

    async def get(self, name: str) -> Optional[PasswordCredential]: ...


class KeyringCredentialStore:
    """Credential store backed by the system keyring.

    Args:
        service: Keyring service name the secrets are filed under.
    """

    def __init__(self, service: str = DEFAULT_KEYRING_SERVICE) -> None:
        self.service = service

    async def get(self, name: str) -> Optional[PasswordCredential]:
        """Look up the secret registered for a storage source.

        Returns:
            The credential, or None when absent or the keyring failed.
        """
        try:
            password = await asyncio.to_thread(keyring.get_password, self.service, name)
        except Exception as exc:
            logger.error("Error getting Password from Manager: %s", exc)
            return None

        if not password:
            return None
        return PasswordCredential(id=name, password=password)

    async def store(self, name: str, secret: str) -> bool:
        """Register a secret for a storage source."""
        try:
            await asyncio.to_thread(keyring.set_password, self.service, name, secret)
        except KeyringError as exc:
            logger.warning("Could not store secret for %s: %s", name, exc)
            return False
        logger.info("Stored secret for %s in credential manager", name)
        return True

    async def remove(self, name: str) -> bool:
        """Drop the secret registered for a storage source, if any."""
        try:
            await asyncio.to_thread(keyring.delete_password, self.service, name)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:
            logger.warning("Could not remove secret for %s: %s", name, exc)
            return False
        return True
