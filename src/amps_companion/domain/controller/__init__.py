"""
Controller Bounded Context

Process-wide controller status and the client handshake.
"""

from amps_companion.domain.controller.entities import (
    ConnectionStatus,
    ConnectRequest,
    ConnectResponse,
    HardwareStatus,
    SessionCounts,
    SystemStatus,
)

__all__ = [
    "SystemStatus",
    "HardwareStatus",
    "SessionCounts",
    "ConnectRequest",
    "ConnectResponse",
    "ConnectionStatus",
]
