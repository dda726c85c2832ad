"""Base exception classes for domain and protocol errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class EntityNotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, identifier: str | int, message: str | None = None) -> None:
        msg = message or f"{entity_type} with id '{identifier}' not found"
        super().__init__(msg, code="NOT_FOUND")
        self.entity_type = entity_type
        self.identifier = identifier


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_STATE")
        self.operation = operation
        self.current_state = current_state


class UnauthorizedError(DomainError):
    """Raised when a request carries a missing or invalid credential."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, code="UNAUTHORIZED")


# === Protocol errors (client side) ===


class TransportError(DomainError):
    """The controller could not be reached (refused, timed out, network failure)."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message, code="TRANSPORT_ERROR")
        self.cause = cause


class ProtocolError(DomainError):
    """The controller answered with a well-formed rejection.

    ``message`` is the controller's error text, surfaced verbatim.
    """

    def __init__(self, message: str, *, status: int, code: str | None = None) -> None:
        super().__init__(message, code=code or _code_for_status(status))
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.code == "NOT_FOUND"

    @property
    def is_unauthorized(self) -> bool:
        return self.code == "UNAUTHORIZED"

    @property
    def is_invalid_state(self) -> bool:
        return self.code == "INVALID_STATE"


class ExhaustedReconnectError(DomainError):
    """Automatic reconnection gave up after ``attempts`` failed attempts."""

    def __init__(self, attempts: int, message: str | None = None) -> None:
        msg = message or f"Max reconnection attempts reached ({attempts}). AMPS connection lost."
        super().__init__(msg, code="RECONNECT_EXHAUSTED")
        self.attempts = attempts


_STATUS_CODES: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "UNAUTHORIZED",
    404: "NOT_FOUND",
    409: "INVALID_STATE",
    422: "VALIDATION_ERROR",
}

_CODE_STATUSES: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "UNAUTHORIZED": 401,
    "NOT_FOUND": 404,
    "INVALID_STATE": 409,
}


def _code_for_status(status: int) -> str:
    return _STATUS_CODES.get(status, "PROTOCOL_ERROR")


def status_for_error(error: DomainError) -> int:
    """HTTP status a controller answers with for ``error``."""
    return _CODE_STATUSES.get(error.code, 500)
