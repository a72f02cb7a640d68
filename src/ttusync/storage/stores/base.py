"""
File store contract -- the transport under a file-tree handler.

Paths are ``/``-separated and relative to the store root. A missing file
is ``None`` on read and ``False`` on delete; only transport failures raise.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

from pydantic import BaseModel


class RemoteEntry(BaseModel):
    """One item of a directory listing."""

    name: str
    is_dir: bool = False
    size: int = 0
    last_modified: int = 0

    @property
    def hidden(self) -> bool:
        return self.name.startswith(".")


class FileStore(Protocol):
    """Minimal async file operations a backend must offer."""

    async def list_entries(self, path: str = "") -> Any:
        """List a directory; missing directories list as empty."""

    async def read(self, path: str) -> Optional[bytes]: ...

    async def write(self, path: str, data: bytes) -> None: ...

    async def delete(self, path: str) -> bool: ...

    async def make_dirs(self, path: str) -> None: ...

    async def aclose(self) -> None: ...


def _coerce_entry(item: Any) -> RemoteEntry:
    if isinstance(item, RemoteEntry):
        return item
    if isinstance(item, dict):
        return RemoteEntry(
            name=item.get("name") or item.get("basename") or item.get("filename", ""),
            is_dir=item.get("is_dir", item.get("type") == "directory"),
            size=int(item.get("size") or 0),
            last_modified=int(item.get("last_modified") or item.get("lastmod") or 0),
        )
    raise TypeError(f"Cannot interpret listing entry {item!r}")


def normalize_listing(result: Any) -> list[RemoteEntry]:
    """Bring a listing into one shape.

    Stores may hand back a bare sequence of entries or a response object
    wrapping it under ``data`` or ``entries`` (as attribute or key).
    """
    if result is None:
        return []

    items: Any = result
    if isinstance(result, dict):
        items = result.get("data", result.get("entries", []))
    elif not isinstance(result, (list, tuple)):
        items = getattr(result, "data", None)
        if items is None:
            items = getattr(result, "entries", [])

    entries: Iterable[Any] = items or []
    return [_coerce_entry(item) for item in entries]
