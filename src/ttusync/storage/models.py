"""
Storage source models -- which backend, and with which credentials.

A storage source is a named backend configuration. Its data is either
one of the credential variants below or an opaque encrypted blob
(salt + nonce + ciphertext) produced by the credential codec.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, model_validator


class StorageKey(str, Enum):
    """Backend kinds a library can replicate to."""

    BROWSER = "browser"
    FS = "fs"
    WEBDAV = "webdav"
    GDRIVE = "gdrive"
    ONEDRIVE = "onedrive"


class StorageSourceDefault(str, Enum):
    """Well-known source names used when the reader has not picked one."""

    GDRIVE_DEFAULT = "gdrive-default"
    ONEDRIVE_DEFAULT = "onedrive-default"


INTERNAL_STORAGE_SOURCE_NAMES = frozenset({"__internal_browser__", "__internal_fs__"})


class FsHandle(BaseModel):
    """A local directory. Never leaves the device, never encrypted."""

    directory_handle: Path
    fs_path: str


class RemoteContext(BaseModel):
    """OAuth client credentials for a cloud drive."""

    client_id: str
    client_secret: str
    refresh_token: Optional[str] = None


class WebDavContext(BaseModel):
    """Endpoint and login for a WebDAV server."""

    url: str
    username: str
    password: str


StorageSourceUnencryptedData = Union[FsHandle, RemoteContext, WebDavContext]
StorageSourceData = Union[FsHandle, RemoteContext, WebDavContext, bytes]


def is_fs_handle(data: Any) -> bool:
    return isinstance(data, FsHandle) and bool(data.fs_path)


def is_remote_context(data: Any) -> bool:
    return isinstance(data, RemoteContext) and bool(data.client_id)


def is_webdav_context(data: Any) -> bool:
    return isinstance(data, WebDavContext) and bool(data.url)


def is_unencrypted_data(data: Any) -> bool:
    return is_fs_handle(data) or is_remote_context(data) or is_webdav_context(data)


def parse_unencrypted_data(raw: dict[str, Any]) -> StorageSourceUnencryptedData:
    """Turn a plain dict into the credential variant its keys describe.

    Raises:
        ValueError: If the dict matches none of the variants.
    """
    if raw.get("fs_path"):
        return FsHandle(
            directory_handle=raw.get("directory_handle") or raw["fs_path"],
            fs_path=raw["fs_path"],
        )
    if raw.get("client_id"):
        return RemoteContext(**raw)
    if raw.get("url"):
        return WebDavContext(**raw)
    raise ValueError("Unrecognized storage source data")


class StorageSource(BaseModel):
    """A persisted, user-named backend configuration."""

    name: str
    type: StorageKey
    data: StorageSourceData
    stored_in_manager: bool = False

    @model_validator(mode="after")
    def _check_data(self) -> "StorageSource":
        encrypted = isinstance(self.data, bytes)
        if self.type == StorageKey.FS and not is_fs_handle(self.data):
            raise ValueError("Filesystem sources must carry a directory handle")
        if self.type != StorageKey.FS and is_fs_handle(self.data):
            raise ValueError(f"{self.type.value} sources cannot carry a directory handle")
        if self.stored_in_manager and not encrypted:
            raise ValueError("Sources stored in the credential manager must be encrypted")
        return self

    @property
    def encrypted(self) -> bool:
        return isinstance(self.data, bytes)


class StorageUnlockAction(BaseModel):
    """Usable credentials plus the secret that decrypted them, if any."""

    data: StorageSourceUnencryptedData
    secret: Optional[str] = None


class StorageSourceSaveResult(BaseModel):
    """Result of saving a source; `old` is set when it was renamed."""

    new: StorageSource
    old: Optional[str] = None
