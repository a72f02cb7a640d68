"""File stores: the transports under file-tree replication handlers."""

from .base import FileStore, RemoteEntry, normalize_listing
from .local import LocalDirectoryStore
from .webdav import WebDavStore

__all__ = [
    "FileStore",
    "LocalDirectoryStore",
    "RemoteEntry",
    "WebDavStore",
    "normalize_listing",
]
