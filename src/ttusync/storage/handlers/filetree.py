"""
File-tree replication handler -- the contract over any file store.

Remote layout:

    <root>/book.epub                         ebook files, one per book
    <root>/.ttu/<book_id>/bookdata_<ts>.json parsed book records
    <root>/.ttu/<book_id>/progress_<ts>.json
    <root>/.ttu/<book_id>/audiobook_<ts>.json
    <root>/.ttu/<book_id>/subtitle_<ts>.json
    <root>/.ttu/<book_id>/cover_<ts>.<ext>
    <root>/.ttu/statistics_<ts>.json
    <root>/.ttu/readinggoals_<ts>.json
    <root>/.ttu/book-ids.json                book_id -> numeric id

``<ts>`` is the record's modification time in epoch milliseconds, so a
file name doubles as the freshness reference for its content. Only the
newest file of each kind is kept.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections import Counter
from contextlib import asynccontextmanager
from pathlib import PurePosixPath
from typing import AsyncIterator, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ...errors import ConfigurationError
from ...models import (
    AudioBook,
    BookData,
    BookmarkData,
    BookSummary,
    DeleteOutcome,
    MergeMode,
    RawResource,
    ReadingGoal,
    ReplicationDeleteResult,
    ReplicationSaveBehavior,
    Statistic,
    SubtitleData,
    now_ms,
)
from ..models import StorageKey
from ..stores.base import FileStore, RemoteEntry, normalize_listing
from .base import (
    AudioBookInput,
    BookInput,
    CancelSignal,
    DataKind,
    HandlerSettings,
    ProgressInput,
    ReadingGoalsResult,
    StatisticsResult,
    SubtitleInput,
    merge_records,
)

logger = logging.getLogger("ttusync.storage.handlers.filetree")

META_DIR = ".ttu"
ID_MAP_FILE = f"{META_DIR}/book-ids.json"
BOOK_EXTENSIONS = frozenset({".epub", ".htmlz", ".azw3", ".mobi", ".fb2", ".kepub"})

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_CONTENT_TYPES = {
    ".epub": "application/epub+zip",
    ".htmlz": "application/zip",
    ".json": "application/json",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

StoreFactory = Callable[[HandlerSettings], Awaitable[FileStore]]
_M = TypeVar("_M", bound=BaseModel)


def sanitize_book_id(title: str) -> str:
    """A title made safe to use as a remote folder name."""
    cleaned = _UNSAFE_CHARS.sub("_", title).strip().lstrip(".")
    return cleaned or "untitled"


def is_book_file(entry: RemoteEntry) -> bool:
    """Visible, non-directory entry with a recognized ebook extension."""
    return (
        not entry.is_dir
        and not entry.hidden
        and PurePosixPath(entry.name).suffix.lower() in BOOK_EXTENSIONS
    )


def _timestamp_of(name: str) -> int:
    stem = name.split(".", 1)[0]
    _, _, ts = stem.partition("_")
    try:
        return int(ts)
    except ValueError:
        return 0


def _matches(entry: RemoteEntry, kind: DataKind) -> bool:
    return not entry.is_dir and entry.name.startswith(f"{kind.value}_")


def _content_type(name: str) -> str:
    return _CONTENT_TYPES.get(PurePosixPath(name).suffix.lower(), "application/octet-stream")


class FileTreeHandler:
    """Replication handler over a lazily created, cached file store.

    The store is created on first use through ``store_factory`` (which
    usually unlocks a storage source) and reused until the bound source
    changes. A store replaced while operations still use it is closed
    once the last of them finishes.

    Args:
        kind: Backend kind this handler serves.
        store_factory: Coroutine function building a store for settings.
        settings: Initial runtime parameters.
    """

    def __init__(
        self,
        kind: StorageKey,
        store_factory: StoreFactory,
        settings: Optional[HandlerSettings] = None,
    ) -> None:
        self.kind = kind
        self.settings = settings or HandlerSettings()
        self._store_factory = store_factory
        self._store: Optional[FileStore] = None
        self._generation = 0
        self._store_lock = asyncio.Lock()
        self._id_lock = asyncio.Lock()
        self._in_use: Counter[int] = Counter()
        self._retired: dict[int, FileStore] = {}
        self._listing_cache: dict[str, list[RemoteEntry]] = {}

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _get_store(self) -> FileStore:
        async with self._store_lock:
            while self._store is None:
                generation = self._generation
                store = await self._store_factory(self.settings)
                if generation == self._generation:
                    self._store = store
                    logger.debug("Connected %s handler to %r", self.kind.value, self.settings.storage_source_name)
                else:
                    await store.aclose()
            return self._store

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[FileStore]:
        store = await self._get_store()
        key = id(store)
        self._in_use[key] += 1
        try:
            yield store
        finally:
            self._in_use[key] -= 1
            if self._in_use[key] <= 0:
                del self._in_use[key]
                retired = self._retired.pop(key, None)
                if retired is not None:
                    await retired.aclose()

    async def _retire_store(self) -> None:
        store, self._store = self._store, None
        self._generation += 1
        self._listing_cache.clear()
        if store is None:
            return
        if self._in_use.get(id(store)):
            self._retired[id(store)] = store
        else:
            await store.aclose()

    async def update_settings(self, settings: HandlerSettings) -> None:
        """Reconfigure the handler.

        Rebinding to another storage source drops the cached connection;
        the next operation connects again.
        """
        rebind = settings.storage_source_name != self.settings.storage_source_name
        self.settings = settings
        if rebind:
            await self._retire_store()
        if not settings.cache_storage_data:
            self._listing_cache.clear()

    async def aclose(self) -> None:
        await self._retire_store()

    def clear_data(self, clear_all: bool = False) -> None:
        """Forget cached remote listings.

        By default only the library root is dropped, which is what the
        book list reads; ``clear_all`` drops every cached folder.
        """
        if clear_all:
            self._listing_cache.clear()
        else:
            self._listing_cache.pop("", None)

    # ------------------------------------------------------------------
    # Listing helpers
    # ------------------------------------------------------------------

    async def _list(self, store: FileStore, path: str) -> list[RemoteEntry]:
        if self.settings.cache_storage_data and path in self._listing_cache:
            return self._listing_cache[path]
        entries = normalize_listing(await store.list_entries(path))
        if self.settings.cache_storage_data:
            self._listing_cache[path] = entries
        return entries

    def _invalidate(self, path: str) -> None:
        path = path.strip("/")
        self._listing_cache.pop(path, None)
        while path:
            path = path.rpartition("/")[0]
            self._listing_cache.pop(path, None)

    def _dir_for(self, book_id: Optional[str]) -> str:
        return f"{META_DIR}/{book_id}" if book_id else META_DIR

    async def _latest(
        self, store: FileStore, book_id: Optional[str], kind: DataKind
    ) -> Optional[RemoteEntry]:
        entries = [e for e in await self._list(store, self._dir_for(book_id)) if _matches(e, kind)]
        if not entries:
            return None
        return max(entries, key=lambda e: _timestamp_of(e.name))

    async def _root_book(self, store: FileStore, book_id: str) -> Optional[RemoteEntry]:
        for entry in await self._list(store, ""):
            if entry.name == book_id and is_book_file(entry):
                return entry
        return None

    async def _read_latest(
        self, book_id: Optional[str], kind: DataKind, model: Type[_M]
    ) -> Optional[_M | RawResource]:
        async with self._connection() as store:
            entry = await self._latest(store, book_id, kind)
            if entry is None:
                return None
            path = f"{self._dir_for(book_id)}/{entry.name}"
            data = await store.read(path)
        if data is None:
            return None
        if entry.name.endswith(".json"):
            try:
                return model.model_validate_json(data)
            except ValidationError as exc:
                logger.warning("Unreadable %s at %s: %s", kind.value, path, exc)
        return RawResource(
            name=entry.name,
            data=data,
            last_modified=_timestamp_of(entry.name),
            content_type=_content_type(entry.name),
        )

    async def _write_versioned(
        self,
        store: FileStore,
        book_id: Optional[str],
        kind: DataKind,
        payload: bytes,
        timestamp: int,
        extension: str = ".json",
        force: bool = False,
    ) -> bool:
        """Write a new version of ``kind`` and drop the older ones.

        Returns:
            False if NEW_ONLY saving skipped the write.
        """
        directory = self._dir_for(book_id)
        existing = [e for e in await self._list(store, directory) if _matches(e, kind)]

        if (
            not force
            and existing
            and self.settings.save_behavior == ReplicationSaveBehavior.NEW_ONLY
            and max(_timestamp_of(e.name) for e in existing) >= timestamp
        ):
            logger.debug("Skipping %s for %s: remote copy is not older", kind.value, book_id or "library")
            return False

        name = f"{kind.value}_{timestamp}{extension}"
        await store.write(f"{directory}/{name}", payload)
        for entry in existing:
            if entry.name != name:
                await store.delete(f"{directory}/{entry.name}")
        self._invalidate(f"{directory}/{name}")
        return True

    def _timestamp(self, value: Optional[int], skip_timestamp_fallback: bool) -> int:
        if value:
            return value
        return 0 if skip_timestamp_fallback else now_ms()

    async def _save_record(
        self,
        book_id: str,
        kind: DataKind,
        data: BaseModel,
        modified_attr: str,
        skip_timestamp_fallback: bool,
    ) -> None:
        if isinstance(data, RawResource):
            timestamp = self._timestamp(data.last_modified, skip_timestamp_fallback)
            payload = data.data
            extension = PurePosixPath(data.name).suffix or ".bin"
        else:
            timestamp = self._timestamp(getattr(data, modified_attr), skip_timestamp_fallback)
            payload = data.model_dump_json().encode("utf-8")
            extension = ".json"

        async with self._connection() as store:
            written = await self._write_versioned(store, book_id, kind, payload, timestamp, extension)
        if written:
            logger.info("Saved %s for %s", kind.value, book_id)

    # ------------------------------------------------------------------
    # Numeric ids
    # ------------------------------------------------------------------

    async def _load_ids(self, store: FileStore) -> dict[str, int]:
        raw = await store.read(ID_MAP_FILE)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Book id map is corrupt, starting over")
            return {}
        return {str(k): int(v) for k, v in data.items()} if isinstance(data, dict) else {}

    async def _assign_id(self, store: FileStore, book_id: str) -> int:
        async with self._id_lock:
            ids = await self._load_ids(store)
            if book_id not in ids:
                ids[book_id] = max(ids.values(), default=0) + 1
                await store.write(ID_MAP_FILE, json.dumps(ids, indent=2).encode("utf-8"))
            return ids[book_id]

    async def _drop_ids(self, store: FileStore, book_ids: list[str]) -> None:
        async with self._id_lock:
            ids = await self._load_ids(store)
            if any(ids.pop(book_id, None) is not None for book_id in list(book_ids)):
                await store.write(ID_MAP_FILE, json.dumps(ids, indent=2).encode("utf-8"))

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    async def get_filename_for_recent_check(
        self, book_id: Optional[str], kind: DataKind
    ) -> Optional[str]:
        """Reference identifier of the newest remote copy of ``kind``.

        Book-scoped kinds yield ``"<book_id>/<file name>"``; an ebook file
        without a parsed record yields ``"<book_id>/<book_id>@<mtime>"``.
        Library-scoped kinds (statistics, reading goals) yield the bare
        file name.
        """
        async with self._connection() as store:
            entry = await self._latest(store, book_id, kind)
            if entry is not None:
                return f"{book_id}/{entry.name}" if book_id else entry.name
            if kind == DataKind.BOOK and book_id:
                root_entry = await self._root_book(store, book_id)
                if root_entry is not None:
                    return f"{book_id}/{root_entry.name}@{root_entry.last_modified}"
        return None

    async def _probe(self, reference: Optional[str], kind: DataKind) -> bool:
        if not reference:
            return False
        book_id: Optional[str] = None
        if kind not in (DataKind.STATISTICS, DataKind.READING_GOALS):
            book_id, sep, _ = reference.partition("/")
            if not sep or not book_id:
                return False
        current = await self.get_filename_for_recent_check(book_id, kind)
        return current is not None and current == reference

    async def is_book_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.BOOK)

    async def is_audio_book_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.AUDIO_BOOK)

    async def is_progress_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.PROGRESS)

    async def is_subtitle_data_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.SUBTITLE)

    async def are_statistics_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.STATISTICS)

    async def are_reading_goals_present_and_up_to_date(self, reference: Optional[str]) -> bool:
        return await self._probe(reference, DataKind.READING_GOALS)

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def get_book_list(self) -> list[BookSummary]:
        """Every book the backend holds: ebook files plus parsed records."""
        async with self._connection() as store:
            books: dict[str, BookSummary] = {}
            for entry in await self._list(store, ""):
                if is_book_file(entry):
                    books[entry.name] = BookSummary(
                        id=entry.name,
                        title=PurePosixPath(entry.name).stem,
                        size=entry.size,
                        last_book_modified=entry.last_modified,
                    )

            for folder in await self._list(store, META_DIR):
                if not folder.is_dir or folder.name in books:
                    continue
                record = await self._latest(store, folder.name, DataKind.BOOK)
                if record is None:
                    continue
                books[folder.name] = BookSummary(
                    id=folder.name,
                    title=folder.name,
                    size=record.size,
                    last_book_modified=_timestamp_of(record.name),
                )
        return list(books.values())

    async def get_book(self, book_id: str) -> Optional[BookInput]:
        """The parsed record if one exists, else the raw ebook file."""
        record = await self._read_latest(book_id, DataKind.BOOK, BookData)
        if record is not None:
            return record

        async with self._connection() as store:
            entry = await self._root_book(store, book_id)
            if entry is None:
                return None
            data = await store.read(entry.name)
        if data is None:
            return None
        return RawResource(
            name=entry.name,
            data=data,
            last_modified=entry.last_modified,
            content_type=_content_type(entry.name),
        )

    async def get_audio_book(self, book_id: str) -> Optional[AudioBookInput]:
        return await self._read_latest(book_id, DataKind.AUDIO_BOOK, AudioBook)

    async def get_progress(self, book_id: str) -> Optional[ProgressInput]:
        return await self._read_latest(book_id, DataKind.PROGRESS, BookmarkData)

    async def get_subtitle_data(self, book_id: str) -> Optional[SubtitleInput]:
        return await self._read_latest(book_id, DataKind.SUBTITLE, SubtitleData)

    async def get_cover(self, book_id: str) -> Optional[RawResource]:
        async with self._connection() as store:
            entry = await self._latest(store, book_id, DataKind.COVER)
            if entry is None:
                return None
            data = await store.read(f"{self._dir_for(book_id)}/{entry.name}")
        if data is None:
            return None
        return RawResource(
            name=entry.name,
            data=data,
            last_modified=_timestamp_of(entry.name),
            content_type=_content_type(entry.name),
        )

    async def _read_list(self, kind: DataKind, model: Type[_M]) -> tuple[Optional[list[_M]], int]:
        async with self._connection() as store:
            entry = await self._latest(store, None, kind)
            if entry is None:
                return None, 0
            raw = await store.read(f"{META_DIR}/{entry.name}")
        if raw is None:
            return None, 0
        try:
            records = [model.model_validate(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            logger.warning("Unreadable %s file %s: %s", kind.value, entry.name, exc)
            return None, 0
        return records, _timestamp_of(entry.name)

    async def get_statistics(self) -> StatisticsResult:
        statistics, modified = await self._read_list(DataKind.STATISTICS, Statistic)
        return StatisticsResult(statistics=statistics, last_statistic_modified=modified)

    async def get_reading_goals(self) -> ReadingGoalsResult:
        goals, modified = await self._read_list(DataKind.READING_GOALS, ReadingGoal)
        return ReadingGoalsResult(reading_goals=goals, last_goal_modified=modified)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save_book(
        self,
        data: BookInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> int:
        """Store a book and return its numeric id.

        Raw resources land at the root as ebook files; parsed records
        are stored as JSON next to the book's other data.

        Raises:
            ConfigurationError: A raw resource without an ebook extension.
        """
        if isinstance(data, RawResource):
            book_id = data.name
            if PurePosixPath(book_id).suffix.lower() not in BOOK_EXTENSIONS or book_id.startswith("."):
                raise ConfigurationError(f"{book_id} is not a recognized ebook file")
            async with self._connection() as store:
                await store.write(book_id, data.data)
                self._invalidate(book_id)
                book_number = await self._assign_id(store, book_id)
            logger.info("Saved book file %s", book_id)
            return book_number

        record = data.model_copy()
        if remove_storage_context:
            record.storage_source = None
        record.last_book_modified = self._timestamp(record.last_book_modified, skip_timestamp_fallback)
        book_id = sanitize_book_id(record.title)

        async with self._connection() as store:
            written = await self._write_versioned(
                store,
                book_id,
                DataKind.BOOK,
                record.model_dump_json(exclude={"id"}).encode("utf-8"),
                record.last_book_modified,
            )
            book_number = await self._assign_id(store, book_id)
        if written:
            logger.info("Saved book %s", book_id)
        return book_number

    async def save_audio_book(
        self,
        book_id: str,
        data: AudioBookInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None:
        await self._save_record(
            book_id, DataKind.AUDIO_BOOK, data, "last_audio_book_modified", skip_timestamp_fallback
        )

    async def save_progress(
        self,
        book_id: str,
        data: ProgressInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None:
        await self._save_record(
            book_id, DataKind.PROGRESS, data, "last_bookmark_modified", skip_timestamp_fallback
        )

    async def save_subtitle_data(
        self,
        book_id: str,
        data: SubtitleInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None:
        await self._save_record(
            book_id, DataKind.SUBTITLE, data, "last_subtitle_data_modified", skip_timestamp_fallback
        )

    async def save_cover(self, book_id: str, data: Optional[RawResource]) -> None:
        """Store a cover image; ``None`` removes the current one."""
        if data is not None:
            await self._save_record(book_id, DataKind.COVER, data, "last_modified", False)
            return

        async with self._connection() as store:
            directory = self._dir_for(book_id)
            for entry in await self._list(store, directory):
                if _matches(entry, DataKind.COVER):
                    await store.delete(f"{directory}/{entry.name}")
            self._invalidate(f"{directory}/cover")

    async def _save_list(
        self,
        kind: DataKind,
        records: list[_M],
        last_modified: int,
        merge_mode: MergeMode,
        modified_attr: str,
    ) -> None:
        async with self._connection() as store:
            force = False
            if merge_mode == MergeMode.MERGE:
                remote, remote_modified = await self._read_list(
                    kind, Statistic if kind == DataKind.STATISTICS else ReadingGoal
                )
                if remote:
                    records = merge_records(records, remote, modified_attr)
                    last_modified = max(last_modified, remote_modified)
                    force = True

            payload = json.dumps([r.model_dump(mode="json") for r in records], indent=2)
            written = await self._write_versioned(
                store, None, kind, payload.encode("utf-8"), last_modified or now_ms(), force=force
            )
        if written:
            logger.info("Saved %d %s record(s)", len(records), kind.value)

    async def save_statistics(self, statistics: list[Statistic], last_statistic_modified: int) -> None:
        await self._save_list(
            DataKind.STATISTICS,
            statistics,
            last_statistic_modified,
            self.settings.statistics_merge_mode,
            "last_statistic_modified",
        )

    async def save_reading_goals(self, reading_goals: list[ReadingGoal], last_goal_modified: int) -> None:
        await self._save_list(
            DataKind.READING_GOALS,
            reading_goals,
            last_goal_modified,
            self.settings.reading_goals_merge_mode,
            "last_goal_modified",
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def _delete_one(self, store: FileStore, book_id: str) -> bool:
        removed = False
        if PurePosixPath(book_id).suffix.lower() in BOOK_EXTENSIONS:
            removed = await store.delete(book_id)
        removed = await store.delete(self._dir_for(book_id)) or removed
        self._invalidate(book_id)
        self._invalidate(self._dir_for(book_id))
        return removed

    async def _drop_statistics(self, titles: set[str]) -> None:
        statistics, modified = await self._read_list(DataKind.STATISTICS, Statistic)
        if not statistics:
            return
        kept = [s for s in statistics if s.title not in titles]
        if len(kept) == len(statistics):
            return
        async with self._connection() as store:
            payload = json.dumps([s.model_dump(mode="json") for s in kept], indent=2)
            await self._write_versioned(
                store, None, DataKind.STATISTICS, payload.encode("utf-8"), max(modified + 1, now_ms()), force=True
            )

    async def delete_book_data(
        self,
        book_ids: list[str],
        cancel_signal: Optional[CancelSignal] = None,
        keep_local_statistics: bool = False,
    ) -> ReplicationDeleteResult:
        """Delete books one by one, reporting each outcome.

        The cancel signal is checked before every book; books already
        processed stay deleted. A failure on one book is recorded and
        the batch continues.
        """
        if cancel_signal is not None and cancel_signal.is_set():
            logger.info("Deletion cancelled before it started")
            return ReplicationDeleteResult(cancelled=True)

        result = ReplicationDeleteResult()
        deleted: list[str] = []

        async with self._connection() as store:
            for book_id in book_ids:
                if cancel_signal is not None and cancel_signal.is_set():
                    result.cancelled = True
                    logger.info("Deletion cancelled after %d book(s)", len(result.outcomes))
                    break
                try:
                    removed = await self._delete_one(store, book_id)
                except Exception as exc:
                    logger.warning("Failed to delete %s: %s", book_id, exc)
                    result.outcomes[book_id] = DeleteOutcome.FAILED
                    result.errors[book_id] = str(exc)
                    continue

                if removed:
                    result.outcomes[book_id] = DeleteOutcome.DELETED
                    deleted.append(book_id)
                else:
                    result.outcomes[book_id] = DeleteOutcome.SKIPPED

            if deleted:
                try:
                    await self._drop_ids(store, deleted)
                except Exception as exc:
                    logger.warning("Could not update book ids after deletion: %s", exc)

        if deleted and not keep_local_statistics:
            titles = {PurePosixPath(b).stem if is_book_file(RemoteEntry(name=b)) else b for b in deleted}
            try:
                await self._drop_statistics(titles)
            except Exception as exc:
                logger.warning("Could not prune statistics of deleted books: %s", exc)

        return result

    # ------------------------------------------------------------------
    # Reading lifecycle
    # ------------------------------------------------------------------

    async def update_last_read(self, book: BookData) -> None:
        """Stamp the parsed record of ``book`` with its last open time."""
        book_id = sanitize_book_id(book.title)
        async with self._connection() as store:
            entry = await self._latest(store, book_id, DataKind.BOOK)
            if entry is None:
                return
            path = f"{self._dir_for(book_id)}/{entry.name}"
            raw = await store.read(path)
            if raw is None:
                return
            try:
                record = BookData.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning("Unreadable book at %s: %s", path, exc)
                return
            record.last_book_open = book.last_book_open or now_ms()
            await store.write(path, record.model_dump_json(exclude={"id"}).encode("utf-8"))

    async def prepare_book_for_reading(self, book_id: str) -> int:
        """Numeric id of a book that can be opened, 0 if it is not there."""
        async with self._connection() as store:
            present = (
                await self._latest(store, book_id, DataKind.BOOK) is not None
                or await self._root_book(store, book_id) is not None
            )
            if not present:
                return 0
            return await self._assign_id(store, book_id)
