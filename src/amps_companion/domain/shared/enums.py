"""Shared string enumerations used on the wire and in client state."""

from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    """Playback status of a shared session."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"
    ERROR = "error"


class PlaybackAction(StrEnum):
    """Commands accepted by ``POST /sessions/control``."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"


class LinkStatus(StrEnum):
    """Hardware link health for audio and network."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class StorageStatus(StrEnum):
    """Controller storage health."""

    AVAILABLE = "available"
    LOW = "low"
    ERROR = "error"


class ConnectionState(StrEnum):
    """Client-local connection state, derived from the store's flags."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ErrorKind(StrEnum):
    """Which kind of failure the store's ``error`` message describes."""

    OPERATION = "operation"
    CONNECTION = "connection"
    RECONNECT_EXHAUSTED = "reconnect_exhausted"


class TransportMode(StrEnum):
    """How the client reaches a controller."""

    SIMULATOR = "simulator"
    HTTP = "http"


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"
