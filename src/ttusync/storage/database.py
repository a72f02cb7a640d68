"""
StorageSource persistence.

Records are keyed by name. Encrypted blobs are stored base64 encoded,
credential variants as plain dicts, and filesystem handles as their path.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from .models import FsHandle, StorageSource, parse_unencrypted_data

logger = logging.getLogger("ttusync.storage.database")


class StorageSourceRepository(Protocol):
    """Where StorageSource records live."""

    async def get(self, name: str) -> Optional[StorageSource]: ...

    async def put(self, source: StorageSource) -> None: ...

    async def delete(self, name: str) -> bool: ...

    async def list(self) -> list[StorageSource]: ...


def source_to_record(source: StorageSource) -> dict[str, Any]:
    """Serialize a source for the JSON store."""
    if isinstance(source.data, bytes):
        data: Any = base64.b64encode(source.data).decode("ascii")
        encrypted = True
    elif isinstance(source.data, FsHandle):
        data = {"fs_path": source.data.fs_path, "directory_handle": str(source.data.directory_handle)}
        encrypted = False
    else:
        data = source.data.model_dump(mode="json")
        encrypted = False
    return {
        "name": source.name,
        "type": source.type.value,
        "encrypted": encrypted,
        "data": data,
        "stored_in_manager": source.stored_in_manager,
    }


def source_from_record(record: dict[str, Any]) -> StorageSource:
    """Inverse of :func:`source_to_record`."""
    if record.get("encrypted"):
        data: Any = base64.b64decode(record["data"])
    else:
        data = parse_unencrypted_data(record["data"])
    return StorageSource(
        name=record["name"],
        type=record["type"],
        data=data,
        stored_in_manager=record.get("stored_in_manager", False),
    )


class MemoryStorageSourceRepository:
    """In-process repository, for tests and embedding."""

    def __init__(self, sources: Optional[list[StorageSource]] = None) -> None:
        self._sources: dict[str, StorageSource] = {s.name: s for s in sources or []}

    async def get(self, name: str) -> Optional[StorageSource]:
        return self._sources.get(name)

    async def put(self, source: StorageSource) -> None:
        self._sources[source.name] = source

    async def delete(self, name: str) -> bool:
        return self._sources.pop(name, None) is not None

    async def list(self) -> list[StorageSource]:
        return list(self._sources.values())


class JsonStorageSourceRepository:
    """Repository backed by a single JSON file.

    Writes are serialized through a lock; the file is replaced atomically
    so a crash mid-write never leaves half a record.

    Args:
        path: Location of the JSON file. Created on first write.
    """

    def __init__(self, path: Path) -> None:
        self.path = path.expanduser()
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Storage source file %s is corrupt: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, records: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(records, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def get(self, name: str) -> Optional[StorageSource]:
        record = (await asyncio.to_thread(self._read)).get(name)
        if record is None:
            return None
        try:
            return source_from_record(record)
        except ValueError as exc:
            logger.error("Unreadable storage source %s: %s", name, exc)
            return None

    async def put(self, source: StorageSource) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            records[source.name] = source_to_record(source)
            await asyncio.to_thread(self._write, records)
        logger.debug("Saved storage source %s", source.name)

    async def delete(self, name: str) -> bool:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            if records.pop(name, None) is None:
                return False
            await asyncio.to_thread(self._write, records)
        logger.debug("Deleted storage source %s", name)
        return True

    async def list(self) -> list[StorageSource]:
        sources = []
        for name, record in (await asyncio.to_thread(self._read)).items():
            try:
                sources.append(source_from_record(record))
            except ValueError as exc:
                logger.error("Unreadable storage source %s: %s", name, exc)
        return sources
