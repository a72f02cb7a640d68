"""
Credential codec -- storage source data encrypted under a user secret.

Blob layout (one buffer, nothing else persisted):

    offset 0..16   salt   (random per encryption)
    offset 16..28  nonce  (random per encryption)
    offset 28..    AES-256-GCM ciphertext + 16-byte tag

The key is derived with PBKDF2-HMAC-SHA256 over 100 000 iterations.
The secret itself is never written anywhere.
"""

from __future__ import annotations

import json
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import AuthenticationError
from .models import StorageSourceUnencryptedData, parse_unencrypted_data

SALT_BYTE_LENGTH = 16
IV_BYTE_LENGTH = 12
HEADER_BYTE_LENGTH = SALT_BYTE_LENGTH + IV_BYTE_LENGTH
TAG_BYTE_LENGTH = 16
KDF_ITERATIONS = 100_000
KEY_BYTE_LENGTH = 32


def _generate_key(salt: bytes, secret: str) -> bytes:
    """Derive the AES key for a salt and secret.

    Args:
        salt: 16 random bytes stored in the blob header.
        secret: The user's password.

    Returns:
        32 bytes of key material.
    """
    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=KEY_BYTE_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt(payload: str, secret: str) -> bytes:
    """Encrypt a payload under a secret.

    Every call draws a fresh salt and nonce, so equal inputs never
    produce equal blobs.

    Args:
        payload: Text to protect.
        secret: Password the key is derived from.

    Returns:
        salt + nonce + ciphertext, as one buffer.
    """
    salt = os.urandom(SALT_BYTE_LENGTH)
    iv = os.urandom(IV_BYTE_LENGTH)
    data = AESGCM(_generate_key(salt, secret)).encrypt(iv, payload.encode("utf-8"), None)
    return salt + iv + data


def decrypt(encrypted_data: bytes, secret: str) -> str:
    """Decrypt a blob produced by :func:`encrypt`.

    Args:
        encrypted_data: salt + nonce + ciphertext.
        secret: Password the blob was encrypted with.

    Returns:
        The original payload.

    Raises:
        AuthenticationError: Wrong secret, or the blob was tampered with
            or truncated.
    """
    encrypted_data = bytes(encrypted_data)
    if len(encrypted_data) < HEADER_BYTE_LENGTH + TAG_BYTE_LENGTH:
        raise AuthenticationError("Encrypted data is truncated")

    salt = encrypted_data[:SALT_BYTE_LENGTH]
    iv = encrypted_data[SALT_BYTE_LENGTH:HEADER_BYTE_LENGTH]
    data = encrypted_data[HEADER_BYTE_LENGTH:]
    key = _generate_key(salt, secret)

    try:
        plaintext = AESGCM(key).decrypt(iv, data, None)
    except InvalidTag as exc:
        raise AuthenticationError("Unable to decrypt data with the given secret") from exc
    return plaintext.decode("utf-8")


def encrypt_source_data(data: StorageSourceUnencryptedData, secret: str) -> bytes:
    """Serialize a credential variant to JSON and encrypt it."""
    return encrypt(data.model_dump_json(), secret)


def decrypt_source_data(encrypted_data: bytes, secret: str) -> StorageSourceUnencryptedData:
    """Decrypt a blob and parse it back into its credential variant.

    Raises:
        AuthenticationError: If decryption fails or the payload is not a
            credential variant.
    """
    payload = decrypt(encrypted_data, secret)
    try:
        return parse_unencrypted_data(json.loads(payload))
    except (json.JSONDecodeError, ValueError, TypeError) as exc:
        raise AuthenticationError(f"Decrypted data is not a storage context: {exc}") from exc
