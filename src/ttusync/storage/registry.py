"""
Storage source registry -- which named source is active per backend kind.

The registry is a plain object owned by whoever builds the application
context. Nothing here does I/O; persistence goes through
:meth:`StorageSourceRegistry.to_config` and the settings file.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .models import INTERNAL_STORAGE_SOURCE_NAMES, StorageKey, StorageSourceDefault

logger = logging.getLogger("ttusync.storage.registry")

_POINTER_KINDS = (StorageKey.FS, StorageKey.WEBDAV, StorageKey.GDRIVE, StorageKey.ONEDRIVE)

_KIND_DEFAULTS = {
    StorageKey.GDRIVE: StorageSourceDefault.GDRIVE_DEFAULT.value,
    StorageKey.ONEDRIVE: StorageSourceDefault.ONEDRIVE_DEFAULT.value,
}


def is_default_source(name: str) -> bool:
    """True for the per-kind default names and the reserved internal names.

    Those sources cannot be renamed or deleted by the reader.
    """
    return (
        name == StorageSourceDefault.GDRIVE_DEFAULT.value
        or name == StorageSourceDefault.ONEDRIVE_DEFAULT.value
        or name in INTERNAL_STORAGE_SOURCE_NAMES
    )


class StorageSourceRegistry:
    """Active source pointers, one per backend kind.

    Args:
        storage_source: The currently selected backend kind.
        pointers: Initial source names keyed by kind.
    """

    def __init__(
        self,
        storage_source: StorageKey = StorageKey.BROWSER,
        pointers: Optional[dict[StorageKey, str]] = None,
    ) -> None:
        self.storage_source = storage_source
        self._pointers: dict[StorageKey, str] = {
            kind: _KIND_DEFAULTS.get(kind, "") for kind in _POINTER_KINDS
        }
        for kind, name in (pointers or {}).items():
            kind = StorageKey(kind)
            if kind in _POINTER_KINDS:
                self._pointers[kind] = name or _KIND_DEFAULTS.get(kind, "")

    def get_active_source(self, kind: StorageKey) -> str:
        """Name of the source currently selected for a kind ("" if none)."""
        return self._pointers.get(kind, "")

    def set_active_source(self, name: str, kind: StorageKey) -> None:
        """Point a backend kind at a named source.

        An empty name falls back to the kind's default. For the
        filesystem kind there is no default handle, so the current
        backend selection drops back to the in-browser library.
        """
        if kind not in _POINTER_KINDS:
            logger.debug("No source pointer for %s", kind.value)
            return

        self._pointers[kind] = name or _KIND_DEFAULTS.get(kind, "")

        if not name and kind == StorageKey.FS:
            self.storage_source = StorageKey.BROWSER

    def forget(self, name: str) -> list[StorageKey]:
        """Reset every pointer referencing ``name``.

        Returns:
            The kinds that were pointing at it.
        """
        kinds = [kind for kind, current in self._pointers.items() if current == name]
        for kind in kinds:
            self.set_active_source("", kind)
        return kinds

    def to_config(self) -> dict[str, Any]:
        """Plain-data snapshot for the settings file."""
        return {
            "storage_source": self.storage_source.value,
            "pointers": {kind.value: name for kind, name in self._pointers.items()},
        }

    @classmethod
    def from_config(cls, data: Optional[dict[str, Any]]) -> "StorageSourceRegistry":
        """Rebuild a registry from :meth:`to_config` output."""
        data = data or {}
        try:
            storage_source = StorageKey(data.get("storage_source", StorageKey.BROWSER.value))
        except ValueError:
            logger.warning("Unknown storage source %r, using browser", data.get("storage_source"))
            storage_source = StorageKey.BROWSER

        pointers: dict[StorageKey, str] = {}
        for key, name in (data.get("pointers") or {}).items():
            try:
                pointers[StorageKey(key)] = name or ""
            except ValueError:
                logger.warning("Ignoring pointer for unknown backend kind %r", key)
        return cls(storage_source=storage_source, pointers=pointers)
