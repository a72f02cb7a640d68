"""Replication handlers: the uniform contract and its implementations."""

from .base import DataKind, HandlerSettings, ReplicationHandler
from .factory import create_active_handler, create_handler
from .filetree import FileTreeHandler

__all__ = [
    "DataKind",
    "FileTreeHandler",
    "HandlerSettings",
    "ReplicationHandler",
    "create_active_handler",
    "create_handler",
]
