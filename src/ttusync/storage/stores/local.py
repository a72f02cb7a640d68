"""
Local directory store -- a plain folder as backend.

Used for filesystem sources (a folder the reader picked) and for the
in-app default library under the ttusync home directory.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

from ...errors import BackendUnavailableError
from .base import RemoteEntry

logger = logging.getLogger("ttusync.storage.stores.local")


class LocalDirectoryStore:
    """File store rooted at a local directory.

    Args:
        root: Directory that acts as the store root.
        create: Create the root if it does not exist.
    """

    def __init__(self, root: Path, create: bool = True) -> None:
        self.root = Path(root).expanduser()
        if create:
            self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.strip("/")).resolve()
        root = self.root.resolve()
        if target != root and root not in target.parents:
            raise BackendUnavailableError(f"Path escapes store root: {path}")
        return target

    def _list(self, path: str) -> list[RemoteEntry]:
        directory = self._resolve(path)
        if not directory.is_dir():
            return []
        entries = []
        for child in directory.iterdir():
            st = child.stat()
            entries.append(
                RemoteEntry(
                    name=child.name,
                    is_dir=child.is_dir(),
                    size=0 if child.is_dir() else st.st_size,
                    last_modified=int(st.st_mtime * 1000),
                )
            )
        return entries

    def _read(self, path: str) -> Optional[bytes]:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_bytes()

    def _write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".part")
        tmp.write_bytes(data)
        tmp.replace(target)

    def _delete(self, path: str) -> bool:
        target = self._resolve(path)
        if target.is_dir():
            shutil.rmtree(target)
            return True
        if target.exists():
            target.unlink()
            return True
        return False

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except OSError as exc:
            logger.error("Local store %s failed: %s", self.root, exc)
            raise BackendUnavailableError(str(exc)) from exc

    async def list_entries(self, path: str = "") -> list[RemoteEntry]:
        return await self._run(self._list, path)

    async def read(self, path: str) -> Optional[bytes]:
        return await self._run(self._read, path)

    async def write(self, path: str, data: bytes) -> None:
        await self._run(self._write, path, data)

    async def delete(self, path: str) -> bool:
        return await self._run(self._delete, path)

    async def make_dirs(self, path: str) -> None:
        await self._run(lambda: self._resolve(path).mkdir(parents=True, exist_ok=True))

    async def aclose(self) -> None:
        return None
