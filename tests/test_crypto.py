"""Tests for the credential codec.

Covers:
- Round trip of text and credential variants
- Wrong secret and tampering raise AuthenticationError
- Fresh salt and nonce per encryption
- Blob layout
"""

from __future__ import annotations

import pytest

from ttusync.errors import AuthenticationError
from ttusync.storage.crypto import (
    HEADER_BYTE_LENGTH,
    IV_BYTE_LENGTH,
    SALT_BYTE_LENGTH,
    TAG_BYTE_LENGTH,
    decrypt,
    decrypt_source_data,
    encrypt,
    encrypt_source_data,
)
from ttusync.storage.models import RemoteContext, WebDavContext


class TestEncryptDecrypt:
    """Raw payload encryption."""

    def test_round_trip(self):
        """Decrypting with the same secret returns the payload."""
        blob = encrypt('{"url": "https://dav"}', "secret")
        assert decrypt(blob, "secret") == '{"url": "https://dav"}'

    def test_unicode_payload(self):
        """Non-ASCII payloads and secrets survive."""
        blob = encrypt("読書 📚", "päss")
        assert decrypt(blob, "päss") == "読書 📚"

    def test_wrong_secret(self):
        """Another secret fails authentication."""
        blob = encrypt("payload", "right")
        with pytest.raises(AuthenticationError):
            decrypt(blob, "wrong")

    def test_tampered_ciphertext(self):
        """Flipping one ciphertext byte fails authentication."""
        blob = bytearray(encrypt("payload", "secret"))
        blob[HEADER_BYTE_LENGTH] ^= 0x01
        with pytest.raises(AuthenticationError):
            decrypt(bytes(blob), "secret")

    def test_tampered_salt(self):
        """A modified salt derives a different key."""
        blob = bytearray(encrypt("payload", "secret"))
        blob[0] ^= 0xFF
        with pytest.raises(AuthenticationError):
            decrypt(bytes(blob), "secret")

    def test_truncated_blob(self):
        """Blobs shorter than header plus tag are rejected."""
        with pytest.raises(AuthenticationError):
            decrypt(b"\x00" * (HEADER_BYTE_LENGTH + TAG_BYTE_LENGTH - 1), "secret")

    def test_fresh_salt_and_nonce(self):
        """Equal inputs never give equal blobs."""
        first = encrypt("payload", "secret")
        second = encrypt("payload", "secret")
        assert first != second
        assert first[:SALT_BYTE_LENGTH] != second[:SALT_BYTE_LENGTH]
        assert first[SALT_BYTE_LENGTH:HEADER_BYTE_LENGTH] != second[SALT_BYTE_LENGTH:HEADER_BYTE_LENGTH]

    def test_layout_length(self):
        """Blob is salt + nonce + ciphertext + tag."""
        payload = "x" * 40
        blob = encrypt(payload, "secret")
        assert SALT_BYTE_LENGTH == 16
        assert IV_BYTE_LENGTH == 12
        assert len(blob) == HEADER_BYTE_LENGTH + len(payload) + TAG_BYTE_LENGTH


class TestSourceData:
    """Encryption of credential variants."""

    def test_webdav_round_trip(self, webdav_context):
        """A WebDAV context comes back as a WebDavContext."""
        blob = encrypt_source_data(webdav_context, "secret")
        assert isinstance(blob, bytes)
        restored = decrypt_source_data(blob, "secret")
        assert restored == webdav_context

    def test_remote_context_round_trip(self):
        """OAuth client credentials come back as a RemoteContext."""
        context = RemoteContext(client_id="cid", client_secret="cs", refresh_token="rt")
        restored = decrypt_source_data(encrypt_source_data(context, "secret"), "secret")
        assert isinstance(restored, RemoteContext)
        assert restored.refresh_token == "rt"

    def test_non_context_payload(self):
        """A payload that is not a credential variant is rejected."""
        blob = encrypt('{"unrelated": true}', "secret")
        with pytest.raises(AuthenticationError):
            decrypt_source_data(blob, "secret")

    def test_secret_not_in_blob(self, webdav_context):
        """Neither the secret nor the password appears in the blob."""
        blob = encrypt_source_data(webdav_context, "very-secret")
        assert b"very-secret" not in blob
        assert b"hunter2" not in blob
