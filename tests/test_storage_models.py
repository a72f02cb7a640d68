"""Tests for storage source models and record serialization."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ttusync.models import DeleteOutcome, ReplicationDeleteResult
from ttusync.storage.database import source_from_record, source_to_record
from ttusync.storage.models import (
    FsHandle,
    RemoteContext,
    StorageKey,
    StorageSource,
    WebDavContext,
    is_fs_handle,
    is_unencrypted_data,
    parse_unencrypted_data,
)


class TestVariants:
    """Credential variant detection."""

    def test_parse_by_keys(self):
        """The variant is picked from the distinguishing key."""
        assert isinstance(parse_unencrypted_data({"fs_path": "/books"}), FsHandle)
        assert isinstance(parse_unencrypted_data({"client_id": "c", "client_secret": "s"}), RemoteContext)
        assert isinstance(
            parse_unencrypted_data({"url": "https://dav", "username": "u", "password": "p"}), WebDavContext
        )

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            parse_unencrypted_data({"token": "abc"})

    def test_predicates(self, fs_handle, webdav_context):
        assert is_fs_handle(fs_handle)
        assert not is_fs_handle(webdav_context)
        assert is_unencrypted_data(webdav_context)
        assert not is_unencrypted_data(b"\x00" * 44)


class TestStorageSource:
    """Validation rules of StorageSource."""

    def test_fs_requires_handle(self, webdav_context):
        """Filesystem sources cannot hold other credentials."""
        with pytest.raises(ValidationError):
            StorageSource(name="f", type=StorageKey.FS, data=webdav_context)

    def test_handle_only_for_fs(self, fs_handle):
        """Directory handles are rejected for remote kinds."""
        with pytest.raises(ValidationError):
            StorageSource(name="w", type=StorageKey.WEBDAV, data=fs_handle)

    def test_manager_requires_encryption(self, webdav_context):
        """stored_in_manager implies an encrypted blob."""
        with pytest.raises(ValidationError):
            StorageSource(name="w", type=StorageKey.WEBDAV, data=webdav_context, stored_in_manager=True)

    def test_encrypted_flag(self, webdav_context):
        assert StorageSource(name="w", type=StorageKey.WEBDAV, data=b"\x01" * 60).encrypted
        assert not StorageSource(name="w", type=StorageKey.WEBDAV, data=webdav_context).encrypted


class TestRecords:
    """JSON record conversion."""

    def test_encrypted_record(self):
        """Blobs are stored base64 encoded and restored byte for byte."""
        blob = bytes(range(60))
        source = StorageSource(name="nas", type=StorageKey.WEBDAV, data=blob, stored_in_manager=True)
        record = source_to_record(source)
        assert record["encrypted"] is True
        assert isinstance(record["data"], str)
        assert source_from_record(record) == source

    def test_fs_record(self, fs_handle):
        """Directory handles persist as their path."""
        source = StorageSource(name="folder", type=StorageKey.FS, data=fs_handle)
        restored = source_from_record(source_to_record(source))
        assert restored.data.fs_path == fs_handle.fs_path
        assert restored.data.directory_handle == fs_handle.directory_handle


class TestDeleteResult:
    def test_partitions(self):
        result = ReplicationDeleteResult(
            outcomes={"a": DeleteOutcome.DELETED, "b": DeleteOutcome.FAILED, "c": DeleteOutcome.SKIPPED}
        )
        assert result.deleted == ["a"]
        assert result.failed == ["b"]
