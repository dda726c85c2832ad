"""Core entities for the shared playback session."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, model_validator

from amps_companion.domain.shared.constants import LimitConstants, SessionDefaults
from amps_companion.domain.shared.datetime_utils import format_clock, strictly_after, utcnow
from amps_companion.domain.shared.enums import PlaybackAction, SessionStatus
from amps_companion.domain.shared.exceptions import InvalidOperationError, ValidationError
from amps_companion.domain.shared.messages import ErrorMessages
from amps_companion.domain.shared.models import WireModel
from amps_companion.domain.shared.types import (
    NonEmptyStr,
    NonNegativeInt,
    Priority,
    Seconds,
    UtcDatetimeField,
    VolumeInt,
)


def clamp_volume(volume: float) -> int:
    """Clamp a requested volume into the 0-100 range."""
    return int(max(LimitConstants.MIN_VOLUME, min(LimitConstants.MAX_VOLUME, round(volume))))


class CurrentTrack(WireModel):
    """The track loaded in a session, with its playback position."""

    id: NonEmptyStr
    title: str
    artist: str
    duration: Seconds
    position: Seconds = 0.0

    @model_validator(mode="after")
    def _position_within_duration(self) -> CurrentTrack:
        if self.position > self.duration:
            raise ValueError("position cannot exceed duration")
        return self

    @property
    def remaining(self) -> float:
        return self.duration - self.position

    @property
    def progress(self) -> float:
        """Fraction of the track played, 0.0 … 1.0."""
        if self.duration <= 0:
            return 1.0
        return self.position / self.duration

    @property
    def position_formatted(self) -> str:
        return f"{format_clock(self.position)} / {format_clock(self.duration)}"


class QueueItem(WireModel):
    """An entry waiting to play. Index 0 of a session's queue plays next."""

    id: NonEmptyStr
    content_id: NonEmptyStr
    title: str
    artist: str
    duration: Seconds
    added_by: str
    added_at: UtcDatetimeField = Field(default_factory=utcnow)
    priority: Priority = 0

    def to_current_track(self) -> CurrentTrack:
        return CurrentTrack(
            id=self.id,
            title=self.title,
            artist=self.artist,
            duration=self.duration,
            position=0.0,
        )


class SessionSettings(WireModel):
    volume: VolumeInt = SessionDefaults.VOLUME
    shuffle: bool = SessionDefaults.SHUFFLE
    repeat: bool = SessionDefaults.REPEAT

    def merged(self, overrides: Mapping[str, Any] | SessionSettings | None) -> SessionSettings:
        """Return these settings with ``overrides`` applied on top.

        Accepts a partial mapping (camelCase or snake_case keys) or another
        settings object. Volume is clamped rather than rejected.
        """
        if overrides is None:
            return self.model_copy()
        if isinstance(overrides, SessionSettings):
            overrides = overrides.model_dump(exclude_unset=True)

        update: dict[str, Any] = {}
        for name in ("volume", "shuffle", "repeat"):
            if name in overrides and overrides[name] is not None:
                update[name] = overrides[name]
        if "volume" in update:
            update["volume"] = clamp_volume(update["volume"])
        return self.model_copy(update=update)


class Session(WireModel):
    """Aggregate root for shared playback state.

    Every mutating method bumps ``updated_at`` so it strictly increases across
    mutations. Callers are responsible for serializing mutations of one session.
    """

    id: NonEmptyStr
    name: NonEmptyStr = SessionDefaults.NAME
    status: SessionStatus = SessionStatus.INACTIVE
    current_track: CurrentTrack | None = None
    participants: NonNegativeInt = 0
    queue: list[QueueItem] = Field(default_factory=list)
    settings: SessionSettings = Field(default_factory=SessionSettings)
    created_at: UtcDatetimeField = Field(default_factory=utcnow)
    updated_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def has_track(self) -> bool:
        return self.current_track is not None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_paused(self) -> bool:
        return self.status == SessionStatus.PAUSED

    @property
    def is_progressing(self) -> bool:
        """Whether the progression tick moves this session forward."""
        return self.is_active and self.current_track is not None

    def touch(self) -> None:
        """Advance ``updated_at``."""
        self.updated_at = strictly_after(self.updated_at)

    def snapshot(self) -> Session:
        """Deep copy safe to hand outside the owning table."""
        return self.model_copy(deep=True)

    # ── Participants ────────────────────────────────────────────────

    def join(self) -> None:
        self.participants += 1
        self.touch()

    def leave(self) -> None:
        self.participants = max(0, self.participants - 1)
        self.touch()

    # ── Queue ───────────────────────────────────────────────────────

    def find_queue_item(self, item_id: str) -> QueueItem | None:
        return next((item for item in self.queue if item.id == item_id), None)

    def enqueue(self, item: QueueItem) -> int:
        """Insert ``item`` ahead of every lower-priority entry and return its index.

        Entries with equal priority keep insertion order.
        """
        position = len(self.queue)
        for index, existing in enumerate(self.queue):
            if existing.priority < item.priority:
                position = index
                break
        self.queue.insert(position, item)
        self.touch()
        return position

    def remove(self, item_id: str) -> QueueItem | None:
        """Remove a queue entry by id. Unknown ids are a no-op."""
        for index, item in enumerate(self.queue):
            if item.id == item_id:
                removed = self.queue.pop(index)
                self.touch()
                return removed
        return None

    def reorder(self, ordered_ids: Iterable[str]) -> None:
        """Replace the queue order in one step.

        Named ids come first in the given order; entries not named keep their
        prior relative order after them. Unknown and repeated ids are ignored.
        """
        by_id = {item.id: item for item in self.queue}
        reordered: list[QueueItem] = []
        seen: set[str] = set()
        for item_id in ordered_ids:
            if item_id in by_id and item_id not in seen:
                reordered.append(by_id[item_id])
                seen.add(item_id)
        reordered.extend(item for item in self.queue if item.id not in seen)
        self.queue = reordered
        self.touch()

    def _load_next(self) -> CurrentTrack | None:
        """Promote the queue head to ``current_track`` at position 0."""
        if not self.queue:
            self.current_track = None
            return None
        head = self.queue.pop(0)
        self.current_track = head.to_current_track()
        return self.current_track

    # ── Playback ────────────────────────────────────────────────────

    def play(self) -> None:
        if self.current_track is None and self.queue:
            self._load_next()
        self.status = SessionStatus.ACTIVE
        self.touch()

    def pause(self) -> None:
        self.status = SessionStatus.PAUSED
        self.touch()

    def stop(self) -> None:
        self.status = SessionStatus.INACTIVE
        self.current_track = None
        self.touch()

    def next(self) -> CurrentTrack | None:
        """Discard the current track and load the queue head, if any."""
        loaded = self._load_next()
        self.touch()
        return loaded

    def previous(self) -> None:
        """Restart the current track; there is no history to step back through."""
        if self.current_track is not None:
            self.current_track.position = 0.0
        self.touch()

    def apply(self, action: PlaybackAction | str) -> None:
        try:
            action = PlaybackAction(action)
        except ValueError:
            raise ValidationError(
                ErrorMessages.UNKNOWN_PLAYBACK_ACTION.format(action=action), field="action"
            ) from None

        handlers = {
            PlaybackAction.PLAY: self.play,
            PlaybackAction.PAUSE: self.pause,
            PlaybackAction.STOP: self.stop,
            PlaybackAction.NEXT: self.next,
            PlaybackAction.PREVIOUS: self.previous,
        }
        handlers[action]()

    def seek(self, position: float) -> float:
        """Move the playhead, clamped to the loaded track. Returns the new position."""
        if self.current_track is None:
            raise InvalidOperationError(
                operation="seek",
                current_state=self.status.value,
                message=ErrorMessages.NO_ACTIVE_TRACK,
            )
        clamped = max(0.0, min(float(position), self.current_track.duration))
        self.current_track.position = clamped
        self.touch()
        return clamped

    def set_volume(self, volume: float) -> int:
        self.settings.volume = clamp_volume(volume)
        self.touch()
        return self.settings.volume

    def advance(self, seconds: float) -> CurrentTrack | None:
        """Move a playing track forward by ``seconds``.

        When the track reaches its end the ``next`` transition applies; if the
        queue was empty the session falls back to inactive. Returns the track
        that finished, or None if playback simply moved on.
        """
        track = self.current_track
        if not self.is_active or track is None:
            return None

        new_position = track.position + seconds
        if new_position < track.duration:
            track.position = new_position
            self.touch()
            return None

        loaded = self._load_next()
        if loaded is None:
            self.status = SessionStatus.INACTIVE
        self.touch()
        return track
