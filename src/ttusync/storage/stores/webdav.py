"""
WebDAV store over httpx.

Listings use PROPFIND with Depth 1 against a collection; files move with
GET/PUT/DELETE, and parent collections are created with MKCOL on write.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import httpx

from ...errors import BackendUnavailableError
from ..models import WebDavContext
from .base import RemoteEntry

logger = logging.getLogger("ttusync.storage.stores.webdav")

PROPFIND_BODY = b"""<?xml version="1.0"?>
<d:propfind xmlns:d="DAV:">
  <d:prop>
    <d:resourcetype/>
    <d:getcontentlength/>
    <d:getlastmodified/>
  </d:prop>
</d:propfind>"""

_NS = {"d": "DAV:"}


def _quote_path(path: str) -> str:
    return "/".join(quote(segment, safe="") for segment in path.strip("/").split("/") if segment)


def _parse_last_modified(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        return int(parsedate_to_datetime(value).timestamp() * 1000)
    except (TypeError, ValueError):
        return 0


def parse_multistatus(body: str, collection_path: str) -> list[RemoteEntry]:
    """Turn a PROPFIND multistatus body into entries.

    Args:
        body: XML response text.
        collection_path: URL path of the listed collection; its own
            entry is left out.
    """
    root = ET.fromstring(body)
    own_path = unquote(collection_path).rstrip("/")
    entries = []

    for response in root.findall("d:response", _NS):
        href = response.findtext("d:href", default="", namespaces=_NS)
        if not href:
            continue
        href_path = unquote(urlparse(href).path).rstrip("/")
        if href_path == own_path:
            continue

        prop = response.find("d:propstat/d:prop", _NS)
        is_dir = prop is not None and prop.find("d:resourcetype/d:collection", _NS) is not None
        size = prop.findtext("d:getcontentlength", default="0", namespaces=_NS) if prop is not None else "0"
        modified = prop.findtext("d:getlastmodified", namespaces=_NS) if prop is not None else None

        entries.append(
            RemoteEntry(
                name=href_path.rsplit("/", 1)[-1],
                is_dir=is_dir,
                size=int(size or 0),
                last_modified=_parse_last_modified(modified),
            )
        )
    return entries


class WebDavStore:
    """File store on a WebDAV collection.

    One httpx client is kept for the lifetime of the store.

    Args:
        context: Unlocked WebDAV endpoint and login.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use MockTransport).
    """

    def __init__(
        self,
        context: WebDavContext,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = context.url.rstrip("/") + "/"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(context.username, context.password),
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self, method: str, path: str, collection: bool = False, **kwargs
    ) -> httpx.Response:
        url = _quote_path(path)
        if collection and url:
            url += "/"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("WebDAV %s %s failed: %s", method, path, exc)
            raise BackendUnavailableError(f"WebDAV {method} {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise BackendUnavailableError(
                f"WebDAV {method} {path}: authentication failed ({response.status_code})"
            )
        if response.status_code >= 500:
            raise BackendUnavailableError(
                f"WebDAV {method} {path}: server error {response.status_code}"
            )
        return response

    async def list_entries(self, path: str = "") -> list[RemoteEntry]:
        response = await self._request(
            "PROPFIND",
            path,
            collection=True,
            content=PROPFIND_BODY,
            headers={"Depth": "1", "Content-Type": "application/xml"},
        )
        if response.status_code == 404:
            return []
        if response.status_code != 207:
            raise BackendUnavailableError(
                f"WebDAV listing of {path or '/'} returned {response.status_code}"
            )
        try:
            return parse_multistatus(response.text, urlparse(str(response.request.url)).path)
        except ET.ParseError as exc:
            raise BackendUnavailableError(f"Malformed WebDAV listing: {exc}") from exc

    async def read(self, path: str) -> Optional[bytes]:
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise BackendUnavailableError(f"WebDAV GET {path} returned {response.status_code}")
        return response.content

    async def make_dirs(self, path: str) -> None:
        current = ""
        for segment in path.strip("/").split("/"):
            if not segment:
                continue
            current = f"{current}/{segment}" if current else segment
            response = await self._request("MKCOL", current, collection=True)
            # 405: collection already exists
            if response.status_code not in (201, 405):
                raise BackendUnavailableError(
                    f"WebDAV MKCOL {current} returned {response.status_code}"
                )

    async def write(self, path: str, data: bytes) -> None:
        parent = path.strip("/").rpartition("/")[0]
        if parent:
            await self.make_dirs(parent)
        response = await self._request("PUT", path, content=data)
        if response.status_code not in (200, 201, 204):
            raise BackendUnavailableError(f"WebDAV PUT {path} returned {response.status_code}")
        logger.debug("Uploaded %s (%d bytes)", path, len(data))

    async def delete(self, path: str) -> bool:
        response = await self._request("DELETE", path)
        if response.status_code == 404:
            return False
        if response.status_code not in (200, 204):
            raise BackendUnavailableError(f"WebDAV DELETE {path} returned {response.status_code}")
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
