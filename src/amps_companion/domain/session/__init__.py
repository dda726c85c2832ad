"""
Session Bounded Context

Shared playback state: the session aggregate, its queue and its settings.
"""

from amps_companion.domain.session.entities import (
    CurrentTrack,
    QueueItem,
    Session,
    SessionSettings,
)
from amps_companion.domain.session.repository import SessionRepository

__all__ = [
    # Entities
    "Session",
    "CurrentTrack",
    "QueueItem",
    "SessionSettings",
    # Repository
    "SessionRepository",
]
