"""
Pydantic models for the reader's library data.

These are the records the replication handlers move between the local
library and a storage backend. Timestamps are epoch milliseconds, the
unit the reader uses everywhere.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class MergeMode(str, Enum):
    """How remote statistics or reading goals reconcile with local ones."""

    MERGE = "merge"
    REPLACE = "replace"


class ReplicationSaveBehavior(str, Enum):
    """Whether saves overwrite newer remote data."""

    ALL = "all"
    NEW_ONLY = "new_only"


class BookData(BaseModel):
    """A parsed book as the reader stores it."""

    id: Optional[int] = None
    title: str
    style_sheet: str = ""
    element_html: str = ""
    characters: int = 0
    language: Optional[str] = None
    has_thumb: bool = False
    last_book_modified: Optional[int] = None
    last_book_open: Optional[int] = None
    storage_source: Optional[str] = None


class AudioBook(BaseModel):
    """Playback state for the audiobook attached to a book."""

    title: str
    playback_position: float = 0.0
    last_audio_book_modified: Optional[int] = None


class BookmarkData(BaseModel):
    """Reading progress of a single book."""

    data_id: Optional[int] = None
    explored_char_count: int = 0
    progress: float = 0.0
    scroll_x: int = 0
    scroll_y: int = 0
    chapter_index: Optional[int] = None
    chapter_reference: Optional[str] = None
    last_bookmark_modified: Optional[int] = None


class Subtitle(BaseModel):
    """One subtitle cue of an audiobook."""

    start: float
    end: float
    text: str


class SubtitleData(BaseModel):
    """Subtitle track of an audiobook."""

    title: str
    subtitles: list[Subtitle] = Field(default_factory=list)
    last_subtitle_data_modified: Optional[int] = None


class ReadingGoal(BaseModel):
    """A reading goal over a date range."""

    goal_type: str = "time"
    goal_value: int = 0
    goal_start_date: str
    goal_end_date: str
    goal_original_end_date: Optional[str] = None
    last_goal_modified: int = 0

    @property
    def key(self) -> str:
        return self.goal_start_date


class Statistic(BaseModel):
    """Per-book, per-day reading statistics."""

    title: str
    date_key: str
    characters_read: int = 0
    reading_time: float = 0.0
    min_reading_speed: float = 0.0
    max_reading_speed: float = 0.0
    last_reading_speed: float = 0.0
    completed_book: bool = False
    last_statistic_modified: int = 0

    @property
    def key(self) -> str:
        return f"{self.title}\x00{self.date_key}"


class BookSummary(BaseModel):
    """What the library view needs to show one book card."""

    id: str
    title: str
    size: int = 0
    last_book_modified: int = 0


class RawResource(BaseModel):
    """An uninterpreted file coming from or going to a backend."""

    name: str
    data: bytes
    last_modified: Optional[int] = None
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


class DeleteOutcome(str, Enum):
    """Per-book outcome of a deletion batch."""

    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


class ReplicationDeleteResult(BaseModel):
    """Outcome of delete_book_data, reported per book identifier."""

    outcomes: dict[str, DeleteOutcome] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    cancelled: bool = False

    @property
    def deleted(self) -> list[str]:
        return [k for k, v in self.outcomes.items() if v == DeleteOutcome.DELETED]

    @property
    def failed(self) -> list[str]:
        return [k for k, v in self.outcomes.items() if v == DeleteOutcome.FAILED]
