"""Tests for settings persistence."""

from __future__ import annotations

import yaml

from ttusync.config import CONFIG_FILE, SyncSettings, load_settings, save_settings
from ttusync.models import MergeMode, ReplicationSaveBehavior
from ttusync.storage.models import StorageKey
from ttusync.storage.registry import StorageSourceRegistry


class TestLoadSettings:
    def test_defaults_when_missing(self, tmp_home):
        settings = load_settings(tmp_home)
        assert settings.keyring_service == "ttusync"
        assert settings.handler.save_behavior == ReplicationSaveBehavior.ALL
        assert settings.registry().storage_source == StorageKey.BROWSER

    def test_reads_yaml(self, tmp_home):
        (tmp_home / CONFIG_FILE).write_text(
            yaml.dump(
                {
                    "webdav_timeout": 5,
                    "handler": {"save_behavior": "new_only", "statistics_merge_mode": "replace"},
                    "sources": {"storage_source": "webdav", "pointers": {"webdav": "nas"}},
                }
            )
        )
        settings = load_settings(tmp_home)
        assert settings.webdav_timeout == 5.0
        assert settings.handler.save_behavior == ReplicationSaveBehavior.NEW_ONLY
        assert settings.handler.statistics_merge_mode == MergeMode.REPLACE
        registry = settings.registry()
        assert registry.storage_source == StorageKey.WEBDAV
        assert registry.get_active_source(StorageKey.WEBDAV) == "nas"

    def test_malformed_falls_back(self, tmp_home, caplog):
        (tmp_home / CONFIG_FILE).write_text("handler: [unclosed\n")
        with caplog.at_level("WARNING", logger="ttusync.config"):
            settings = load_settings(tmp_home)
        assert settings == SyncSettings()
        assert "Failed to load settings" in caplog.text

    def test_invalid_values_fall_back(self, tmp_home):
        (tmp_home / CONFIG_FILE).write_text(yaml.dump({"handler": {"save_behavior": "sometimes"}}))
        assert load_settings(tmp_home) == SyncSettings()


class TestSaveSettings:
    def test_round_trip_with_registry(self, tmp_path):
        home = tmp_path / "fresh"
        registry = StorageSourceRegistry(storage_source=StorageKey.FS)
        registry.set_active_source("folder", StorageKey.FS)
        settings = SyncSettings(webdav_timeout=12.5)

        path = save_settings(home, settings, registry)

        assert path == home / CONFIG_FILE
        loaded = load_settings(home)
        assert loaded.webdav_timeout == 12.5
        assert loaded.registry().get_active_source(StorageKey.FS) == "folder"
        assert loaded.registry().storage_source == StorageKey.FS
