"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the protocol models is defined here once,
so models can simply annotate their fields::

    from amps_companion.domain.shared.types import NonEmptyStr, VolumeInt

    class MyModel(BaseModel):
        name: NonEmptyStr
        volume: VolumeInt
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

from ...domain.shared.datetime_utils import UtcDateTime

# ── Numeric constraints ─────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float >= 0.0."""

PositiveFloat = Annotated[float, Field(gt=0.0)]
"""Float > 0.0."""

VolumeInt = Annotated[int, Field(ge=0, le=100)]
"""Session volume in percent: 0 … 100."""

Seconds = Annotated[float, Field(ge=0.0)]
"""Track duration or playback position in seconds."""

Priority = int
"""Queue priority; higher values play earlier."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""


# ── Settings-specific constraints ──────────────────────────────────

TimeoutSeconds = Annotated[float, Field(gt=0.0, le=300.0)]
"""Request timeout in seconds: (0 … 300]."""

IntervalSeconds = Annotated[float, Field(gt=0.0)]
"""Background loop interval in seconds: > 0."""

MaxAttempts = Annotated[int, Field(ge=1, le=100)]
"""Reconnect attempt budget: 1 … 100."""


# ── Datetime constraints ────────────────────────────────────────────

def _ensure_utc(v: datetime | str) -> datetime:
    """Validate that a datetime is timezone-aware and normalise to UTC."""
    return UtcDateTime.coerce(v).dt


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC on input (accepts ISO strings)."""
