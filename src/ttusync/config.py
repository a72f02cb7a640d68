"""
Settings file -- ``config.yaml`` in the ttusync home.

Holds handler defaults, the active source pointers, and transport knobs.
A missing or malformed file falls back to defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .storage.credential_store import DEFAULT_KEYRING_SERVICE
from .storage.handlers.base import HandlerSettings
from .storage.registry import StorageSourceRegistry

logger = logging.getLogger("ttusync.config")

CONFIG_FILE = "config.yaml"
SOURCES_FILE = "storage-sources.json"
LIBRARY_DIR = "library"


class SyncSettings(BaseModel):
    """Everything persisted in config.yaml."""

    keyring_service: str = DEFAULT_KEYRING_SERVICE
    webdav_timeout: float = 30.0
    handler: HandlerSettings = Field(default_factory=HandlerSettings)
    sources: dict[str, Any] = Field(default_factory=dict)

    def registry(self) -> StorageSourceRegistry:
        """Active source pointers as a registry object."""
        return StorageSourceRegistry.from_config(self.sources)


def load_settings(home: Path) -> SyncSettings:
    """Load settings from ``home``; defaults if absent or unreadable."""
    config_file = home.expanduser() / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return SyncSettings(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load settings: %s", exc)
    return SyncSettings()


def save_settings(
    home: Path, settings: SyncSettings, registry: StorageSourceRegistry | None = None
) -> Path:
    """Write settings (and the registry's pointers, if given) to disk."""
    home = home.expanduser()
    home.mkdir(parents=True, exist_ok=True)
    if registry is not None:
        settings.sources = registry.to_config()
    config_file = home / CONFIG_FILE
    config_file.write_text(
        yaml.dump(settings.model_dump(mode="json"), default_flow_style=False),
        encoding="utf-8",
    )
    return config_file
