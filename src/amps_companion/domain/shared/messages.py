"""Centralized message constants for error messages, validation, and log output."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Session errors
    NO_ACTIVE_SESSION = "No active session"
    SESSION_NOT_FOUND = "Session not found"
    NO_ACTIVE_TRACK = "No active track"
    UNKNOWN_PLAYBACK_ACTION = "Unknown playback action: {action}"
    EMPTY_SESSION_NAME = "Session name cannot be empty"

    # Queue errors
    EMPTY_CONTENT_ID = "Content ID cannot be empty"
    INVALID_REORDER_PAYLOAD = "queueItemIds must be a list of strings"

    # Protocol errors
    UNKNOWN_ENDPOINT = "Unknown endpoint: {method} {path}"
    MISSING_CREDENTIAL = "Missing bearer credential"
    INVALID_CREDENTIAL = "Invalid bearer credential"
    CONNECTION_FAILED = "Failed to connect to AMPS system"
    REQUEST_TIMEOUT = "AMPS API request timeout"
    HTTP_ERROR = "AMPS API error: {status} {reason}"
    MALFORMED_RESPONSE = "Malformed response from AMPS API"

    # Time/Date validation errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"

    # Settings validation errors
    INVALID_BASE_URL = "Controller base URL must start with http:// or https://"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Client lifecycle
    CLIENT_CONNECTING = "Connecting to AMPS system..."
    CLIENT_CONNECTED = "Successfully connected to AMPS system (client %s)"
    CLIENT_CONNECT_REJECTED = "AMPS system rejected connection: %s"
    CLIENT_DISCONNECTED = "Disconnected from AMPS system"
    CLIENT_DISCONNECT_NOTIFY_FAILED = "Error notifying AMPS of disconnect: %r"
    CLIENT_ALREADY_CONNECTED = "Already connected to AMPS system"

    # Heartbeat / reconnection
    HEARTBEAT_STARTED = "Heartbeat started (every %.1fs)"
    HEARTBEAT_STOPPED = "Heartbeat stopped"
    HEARTBEAT_FAILED = "Heartbeat failed: %r"
    HEARTBEAT_SKIPPED_IN_FLIGHT = "Heartbeat skipped, previous call still in flight"
    RECONNECT_ATTEMPT = "Attempting to reconnect to AMPS (%d/%d) in %.1fs..."
    RECONNECT_ATTEMPT_FAILED = "Reconnect attempt %d failed: %r"
    RECONNECT_SUCCEEDED = "Reconnected to AMPS after %d attempt(s)"
    RECONNECT_ABANDONED = "Reconnection abandoned after an explicit disconnect"
    RECONNECT_EXHAUSTED = "Max reconnection attempts reached (%d). AMPS connection lost."

    # Client operations
    OPERATION_FAILED = "AMPS %s failed: %r"

    # Store
    STORE_REFRESH_STARTED = "Periodic refresh started (every %.1fs)"
    STORE_REFRESH_STOPPED = "Periodic refresh stopped"
    STORE_REFRESH_FAILED = "Failed to refresh %s: %r"
    STORE_ACTION_FAILED = "Store action %s failed: %s"
    STORE_LISTENER_FAILED = "Error in store listener"

    # Simulator
    SIM_REQUEST = "Mock AMPS API: %s %s"
    SIM_CLIENT_CONNECTED = "Simulator accepted client %s"
    SIM_CLIENT_DISCONNECTED = "Simulator released client %s"
    SIM_SESSION_CREATED = "Created session %s (%s)"
    SIM_SESSION_JOINED = "Client %s joined session %s (participants=%d)"
    SIM_SESSION_LEFT = "Client %s left session %s (participants=%d)"
    SIM_PLAYBACK_CONTROL = "Playback %s in session %s"
    SIM_QUEUE_ADDED = "Queued %s in session %s at position %d"
    SIM_QUEUE_REMOVED = "Removed queue item %s from session %s"
    SIM_QUEUE_REORDERED = "Reordered queue in session %s"
    SIM_TRACK_ADVANCED = "Session %s advanced to %s"
    SIM_QUEUE_EXHAUSTED = "Queue exhausted in session %s"
    SIM_TICKER_STARTED = "Progression ticker started (tick=%.1fs)"
    SIM_TICKER_STOPPED = "Progression ticker stopped"
    SIM_TICK_FAILED = "Error during progression tick"

    # HTTP transport
    HTTP_REQUEST = "%s %s"
    HTTP_CLIENT_CLOSED = "HTTP transport closed"

    # CLI
    CLI_STARTING = "Starting AMPS companion (%s, mode=%s)"
    CLI_FATAL_ERROR = "Fatal error: %s"
