"""
Storage layer -- named backend sources, their credentials, and the
replication handlers that move library data to them.

Flow: the registry names the active source for a backend kind, the
unlocker turns that name into credentials, and a handler built from
them serves the replication contract.
"""

from .models import StorageKey, StorageSource, StorageUnlockAction
from .registry import StorageSourceRegistry, is_default_source
from .unlock import StorageUnlocker

__all__ = [
    "StorageKey",
    "StorageSource",
    "StorageSourceRegistry",
    "StorageUnlockAction",
    "StorageUnlocker",
    "is_default_source",
]
