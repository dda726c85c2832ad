"""Catalog entries as seen by the playback controller."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from amps_companion.domain.session.entities import QueueItem
from amps_companion.domain.shared.datetime_utils import format_clock, utcnow
from amps_companion.domain.shared.models import WireModel
from amps_companion.domain.shared.types import NonEmptyStr, NonNegativeInt, Priority, Seconds


class ContentMetadata(WireModel):
    genre: str | None = None
    year: NonNegativeInt | None = None
    bpm: NonNegativeInt | None = None
    key: str | None = None


class Content(WireModel):
    """A searchable catalog entry. Read-only from the client's perspective."""

    id: NonEmptyStr
    title: str
    artist: str
    duration: Seconds
    audio_url: str
    metadata: ContentMetadata = Field(default_factory=ContentMetadata)

    @property
    def duration_formatted(self) -> str:
        return format_clock(self.duration)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, artist and genre."""
        needle = query.strip().lower()
        if not needle:
            return True
        haystack = (self.title, self.artist, self.metadata.genre or "")
        return any(needle in field.lower() for field in haystack)

    def to_queue_item(
        self,
        item_id: str,
        *,
        added_by: str,
        priority: Priority = 0,
        added_at: datetime | None = None,
    ) -> QueueItem:
        return QueueItem(
            id=item_id,
            content_id=self.id,
            title=self.title,
            artist=self.artist,
            duration=self.duration,
            added_by=added_by,
            added_at=added_at or utcnow(),
            priority=priority,
        )
