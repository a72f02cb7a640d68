"""Shared utilities for all CLI command modules.

Provides the Rich console instance and the wiring from a home directory
to the storage objects every command works with.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Coroutine, TypeVar

from rich.console import Console

from .. import TTUSYNC_HOME
from ..config import LIBRARY_DIR, SOURCES_FILE, SyncSettings, load_settings, save_settings
from ..storage.credential_store import KeyringCredentialStore
from ..storage.database import JsonStorageSourceRepository
from ..storage.handlers.factory import create_active_handler
from ..storage.handlers.filetree import FileTreeHandler
from ..storage.prompt import ConsoleUnlockPrompt
from ..storage.registry import StorageSourceRegistry
from ..storage.sources import StorageSourceManager
from ..storage.unlock import StorageUnlocker

console = Console()

_T = TypeVar("_T")


@dataclass
class CliContext:
    """Everything a command needs, built from one home directory."""

    home: Path
    settings: SyncSettings
    registry: StorageSourceRegistry
    manager: StorageSourceManager
    unlocker: StorageUnlocker

    def save(self) -> Path:
        """Persist settings together with the current source pointers."""
        return save_settings(self.home, self.settings, self.registry)

    def handler(self) -> FileTreeHandler:
        """Replication handler for the currently selected backend."""
        return create_active_handler(
            self.registry,
            self.unlocker,
            self.settings.handler,
            library_dir=self.home / LIBRARY_DIR,
            webdav_timeout=self.settings.webdav_timeout,
        )


def open_context(home: str) -> CliContext:
    """Load settings and storage sources from a ttusync home."""
    home_path = Path(home).expanduser()
    settings = load_settings(home_path)
    registry = settings.registry()
    repository = JsonStorageSourceRepository(home_path / SOURCES_FILE)
    credential_store = KeyringCredentialStore(settings.keyring_service)
    return CliContext(
        home=home_path,
        settings=settings,
        registry=registry,
        manager=StorageSourceManager(repository, registry, credential_store),
        unlocker=StorageUnlocker(
            repository, credential_store, ConsoleUnlockPrompt(console=console)
        ),
    )


def run(coro: Coroutine[Any, Any, _T]) -> _T:
    """Run a coroutine to completion from a synchronous command."""
    return asyncio.run(coro)


HOME_HELP = f"ttusync home directory (default {TTUSYNC_HOME})."
