"""Date/time helpers.

Goal: centralize all date/time serialization + parsing.

- Always store and operate on timezone-aware UTC datetimes.
- Accept the ISO strings controllers put on the wire, with or without a Z suffix.

This module is intentionally dependency-free and safe to use in any layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ...domain.shared.messages import ErrorMessages

_TICK = timedelta(microseconds=1)


@dataclass(frozen=True, slots=True)
class UtcDateTime:
    """A tiny value-object wrapper around a timezone-aware UTC `datetime`."""

    dt: datetime

    def __post_init__(self) -> None:
        if self.dt.tzinfo is None:
            raise ValueError(ErrorMessages.TIMEZONE_REQUIRED_UTC_DATETIME)
        # Normalize to UTC
        object.__setattr__(self, "dt", self.dt.astimezone(UTC))

    @classmethod
    def from_iso(cls, value: str) -> UtcDateTime:
        # Accepts: '...+00:00' or '...Z'
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return cls(datetime.fromisoformat(value))

    @classmethod
    def coerce(cls, value: datetime | str) -> UtcDateTime:
        if isinstance(value, str):
            return cls.from_iso(value)
        return cls(value)


def utcnow() -> datetime:
    """Preferred replacement for `datetime.now(UTC)`.

    Returns a timezone-aware datetime in UTC.
    """
    return datetime.now(UTC)


def strictly_after(previous: datetime | None) -> datetime:
    """Return the current time, bumped past ``previous`` if the clock has not moved.

    Used for ``updatedAt`` stamps, which must advance on every mutation even when
    two mutations land within the same clock tick.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + _TICK
    return now


def format_clock(seconds: float) -> str:
    """Format a position/duration in seconds as M:SS or H:MM:SS."""
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
