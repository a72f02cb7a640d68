"""
Error taxonomy shared by the storage layer.

A missing remote resource is never an error: handlers return None for it.
Everything below is a real failure the caller has to react to.
"""

from __future__ import annotations


class TtuSyncError(Exception):
    """Base class for all ttusync errors."""


class ConfigurationError(TtuSyncError):
    """A storage source is missing or holds the wrong kind of credentials."""


class SourceNotFoundError(ConfigurationError):
    """No storage source record exists under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"No storage source with name {name} found")
        self.name = name


class AuthenticationError(TtuSyncError):
    """A secret failed to decrypt an encrypted blob (bad AEAD tag)."""


class UnlockFailedError(TtuSyncError):
    """Every unlock path was exhausted without usable credentials."""


class BackendUnavailableError(TtuSyncError):
    """Transport or authentication failure while talking to a backend."""
