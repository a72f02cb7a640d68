"""Tests for the keyring-backed credential store."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, NoKeyringError, PasswordDeleteError

from ttusync.storage.credential_store import KeyringCredentialStore


class TestGet:
    """Lookups never raise."""

    @pytest.mark.asyncio
    async def test_found(self):
        store = KeyringCredentialStore("ttusync-test")
        with patch("ttusync.storage.credential_store.keyring.get_password", return_value="s3") as get:
            credential = await store.get("nas")
        get.assert_called_once_with("ttusync-test", "nas")
        assert credential.id == "nas"
        assert credential.password == "s3"

    @pytest.mark.asyncio
    async def test_absent(self):
        store = KeyringCredentialStore()
        with patch("ttusync.storage.credential_store.keyring.get_password", return_value=None):
            assert await store.get("nas") is None

    @pytest.mark.asyncio
    async def test_keyring_error_is_absent(self, caplog):
        """A broken keyring is logged and treated as no credential."""
        store = KeyringCredentialStore()
        with patch(
            "ttusync.storage.credential_store.keyring.get_password",
            side_effect=NoKeyringError("no backend"),
        ):
            with caplog.at_level("ERROR", logger="ttusync.storage.credential_store"):
                assert await store.get("nas") is None
        assert "Error getting Password from Manager" in caplog.text


class TestStoreRemove:
    @pytest.mark.asyncio
    async def test_store(self):
        store = KeyringCredentialStore("svc")
        with patch("ttusync.storage.credential_store.keyring.set_password") as set_password:
            assert await store.store("nas", "s3") is True
        set_password.assert_called_once_with("svc", "nas", "s3")

    @pytest.mark.asyncio
    async def test_store_failure(self):
        store = KeyringCredentialStore()
        with patch(
            "ttusync.storage.credential_store.keyring.set_password", side_effect=KeyringError("locked")
        ):
            assert await store.store("nas", "s3") is False

    @pytest.mark.asyncio
    async def test_remove_missing(self):
        store = KeyringCredentialStore()
        with patch(
            "ttusync.storage.credential_store.keyring.delete_password",
            side_effect=PasswordDeleteError("missing"),
        ):
            assert await store.remove("nas") is False
