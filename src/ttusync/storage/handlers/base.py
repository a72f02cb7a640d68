"""
Replication handler contract.

Every backend kind (browser library, local folder, WebDAV, cloud drives)
is served by an object satisfying :class:`ReplicationHandler`. Callers
synchronize library data through this contract only and never learn
which backend is active.

Error policy shared by all handlers: a missing resource is ``None`` (or
``False`` for probes); transport and authentication failures raise
:class:`~ttusync.errors.BackendUnavailableError`.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Protocol, TypeVar, Union, runtime_checkable

from pydantic import BaseModel

from ...models import (
    AudioBook,
    BookData,
    BookmarkData,
    BookSummary,
    MergeMode,
    RawResource,
    ReadingGoal,
    ReplicationDeleteResult,
    ReplicationSaveBehavior,
    Statistic,
    SubtitleData,
)


class DataKind(str, Enum):
    """Kinds of data a handler replicates; values prefix remote file names."""

    BOOK = "bookdata"
    AUDIO_BOOK = "audiobook"
    PROGRESS = "progress"
    SUBTITLE = "subtitle"
    COVER = "cover"
    STATISTICS = "statistics"
    READING_GOALS = "readinggoals"


class HandlerSettings(BaseModel):
    """Runtime parameters of a replication handler."""

    save_behavior: ReplicationSaveBehavior = ReplicationSaveBehavior.ALL
    statistics_merge_mode: MergeMode = MergeMode.MERGE
    reading_goals_merge_mode: MergeMode = MergeMode.MERGE
    cache_storage_data: bool = False
    ask_for_storage_unlock: bool = True
    storage_source_name: str = ""


class StatisticsResult(BaseModel):
    statistics: Optional[list[Statistic]] = None
    last_statistic_modified: int = 0


class ReadingGoalsResult(BaseModel):
    reading_goals: Optional[list[ReadingGoal]] = None
    last_goal_modified: int = 0


class CancelSignal(Protocol):
    """Cooperative cancellation flag, e.g. an ``asyncio.Event``."""

    def is_set(self) -> bool: ...


BookInput = Union[BookData, RawResource]
ProgressInput = Union[BookmarkData, RawResource]
AudioBookInput = Union[AudioBook, RawResource]
SubtitleInput = Union[SubtitleData, RawResource]

_R = TypeVar("_R", Statistic, ReadingGoal)


def merge_records(
    local: Iterable[_R], remote: Iterable[_R], modified_attr: str
) -> list[_R]:
    """Union two record sets by key, keeping the more recently modified.

    Ties go to the local record.
    """
    merged: dict[str, _R] = {record.key: record for record in remote}
    for record in local:
        current = merged.get(record.key)
        if current is None or getattr(record, modified_attr) >= getattr(current, modified_attr):
            merged[record.key] = record
    return list(merged.values())


@runtime_checkable
class ReplicationHandler(Protocol):
    """Capability set every backend implements."""

    settings: HandlerSettings

    # Presence / freshness probes

    async def get_filename_for_recent_check(
        self, book_id: Optional[str], kind: DataKind
    ) -> Optional[str]:
        """Reference identifier of the current remote copy, if any."""

    async def is_book_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    async def is_audio_book_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    async def is_progress_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    async def is_subtitle_data_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    async def are_statistics_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    async def are_reading_goals_present_and_up_to_date(self, reference: Optional[str]) -> bool: ...

    # Fetch

    async def get_book_list(self) -> list[BookSummary]: ...

    async def get_book(self, book_id: str) -> Optional[BookInput]: ...

    async def get_audio_book(self, book_id: str) -> Optional[AudioBookInput]: ...

    async def get_progress(self, book_id: str) -> Optional[ProgressInput]: ...

    async def get_subtitle_data(self, book_id: str) -> Optional[SubtitleInput]: ...

    async def get_cover(self, book_id: str) -> Optional[RawResource]: ...

    async def get_statistics(self) -> StatisticsResult: ...

    async def get_reading_goals(self) -> ReadingGoalsResult: ...

    # Save

    async def save_book(
        self,
        data: BookInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> int: ...

    async def save_audio_book(
        self,
        book_id: str,
        data: AudioBookInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None: ...

    async def save_progress(
        self,
        book_id: str,
        data: ProgressInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None: ...

    async def save_subtitle_data(
        self,
        book_id: str,
        data: SubtitleInput,
        skip_timestamp_fallback: bool = False,
        remove_storage_context: bool = False,
    ) -> None: ...

    async def save_cover(self, book_id: str, data: Optional[RawResource]) -> None: ...

    async def save_statistics(self, statistics: list[Statistic], last_statistic_modified: int) -> None: ...

    async def save_reading_goals(self, reading_goals: list[ReadingGoal], last_goal_modified: int) -> None: ...

    # Deletion

    async def delete_book_data(
        self,
        book_ids: list[str],
        cancel_signal: Optional[CancelSignal] = None,
        keep_local_statistics: bool = False,
    ) -> ReplicationDeleteResult: ...

    # Lifecycle

    def clear_data(self, clear_all: bool = False) -> None: ...

    async def update_last_read(self, book: BookData) -> None: ...

    async def prepare_book_for_reading(self, book_id: str) -> int: ...

    async def update_settings(self, settings: HandlerSettings) -> None: ...

    async def aclose(self) -> None: ...

