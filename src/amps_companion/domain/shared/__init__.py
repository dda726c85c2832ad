"""
Shared Domain Kernel

Contains types, events and exceptions shared across all bounded contexts.
"""

from amps_companion.domain.shared.exceptions import (
    DomainError,
    EntityNotFoundError,
    ExhaustedReconnectError,
    InvalidOperationError,
    ProtocolError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "EntityNotFoundError",
    "InvalidOperationError",
    "UnauthorizedError",
    "TransportError",
    "ProtocolError",
    "ExhaustedReconnectError",
]
