"""Shared test fixtures for ttusync."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from ttusync.storage.credential_store import PasswordCredential
from ttusync.storage.models import FsHandle, WebDavContext


class FakeCredentialStore:
    """In-memory stand-in for the system keyring."""

    def __init__(self, secrets: Optional[dict[str, str]] = None, fail: bool = False):
        self.secrets = dict(secrets or {})
        self.fail = fail
        self.lookups: list[str] = []

    async def get(self, name: str) -> Optional[PasswordCredential]:
        self.lookups.append(name)
        if self.fail:
            return None
        password = self.secrets.get(name)
        return PasswordCredential(id=name, password=password) if password else None

    async def store(self, name: str, secret: str) -> bool:
        self.secrets[name] = secret
        return True

    async def remove(self, name: str) -> bool:
        return self.secrets.pop(name, None) is not None


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary ttusync home directory."""
    home = tmp_path / ".ttusync"
    home.mkdir()
    return home


@pytest.fixture
def webdav_context() -> WebDavContext:
    return WebDavContext(url="https://dav.example.com/books", username="reader", password="hunter2")


@pytest.fixture
def fs_handle(tmp_path: Path) -> FsHandle:
    folder = tmp_path / "library-folder"
    folder.mkdir()
    return FsHandle(directory_handle=folder, fs_path=str(folder))


@pytest.fixture
def credential_store() -> FakeCredentialStore:
    return FakeCredentialStore()
