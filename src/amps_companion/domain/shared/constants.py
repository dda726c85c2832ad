"""Centralized constants for protocol paths, defaults, and other shared values.

This module provides reusable constants that reduce magic strings and improve maintainability.
"""

from __future__ import annotations


class ApiPaths:
    """Controller endpoints, relative to the configured base URL."""

    CONNECT = "/connect"
    DISCONNECT = "/disconnect"
    STATUS = "/status"
    HEARTBEAT = "/heartbeat"

    SESSIONS = "/sessions"
    SESSION_JOIN = "/sessions/{session_id}/join"
    SESSION_LEAVE = "/sessions/leave"
    SESSION_CURRENT = "/sessions/current"
    SESSION_CONTROL = "/sessions/control"
    SESSION_SEEK = "/sessions/seek"
    SESSION_VOLUME = "/sessions/volume"

    QUEUE = "/sessions/queue"
    QUEUE_ITEM = "/sessions/queue/{item_id}"
    QUEUE_REORDER = "/sessions/queue/reorder"

    CONTENT_SEARCH = "/content/search"
    CONTENT_ITEM = "/content/{content_id}"


class HTTPHeaders:
    """HTTP header names and common values."""

    USER_AGENT = "User-Agent"
    AUTHORIZATION = "Authorization"
    CLIENT_ID = "X-Client-Id"

    BEARER = "Bearer {token}"
    USER_AGENT_VALUE = "AMPS-Companion/{version}"


class ClientDefaults:
    """Defaults for the session client and its background tasks."""

    CLIENT_TYPE = "companion"
    VERSION = "1.0.0"
    CAPABILITIES = ("session_control", "queue_management", "content_access")

    HEARTBEAT_INTERVAL_SECONDS = 30.0
    MAX_RECONNECT_ATTEMPTS = 5
    RECONNECT_BASE_DELAY_SECONDS = 5.0
    REQUEST_TIMEOUT_SECONDS = 10.0
    REFRESH_INTERVAL_SECONDS = 5.0
    SEARCH_LIMIT = 50

    BASE_URL = "http://localhost:8080/api"
    API_KEY = "demo-key"


class SessionDefaults:
    """Defaults applied by ``createSession``."""

    VOLUME = 80
    SHUFFLE = False
    REPEAT = False
    NAME = "New Session"


class SimulatorDefaults:
    """Defaults for the in-process controller simulator."""

    VERSION = "1.0.0-mock"
    TICK_SECONDS = 1.0
    TRACK_DURATION_SECONDS = 180.0
    ADDED_BY = "mock-user"
    UNKNOWN_ARTIST = "Mock Artist"
    CATALOG_SIZE = 10


class LimitConstants:
    """Numeric limits and constraints."""

    MIN_VOLUME = 0
    MAX_VOLUME = 100
    MAX_SEARCH_LIMIT = 500


class LogLevels:
    """Valid logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
