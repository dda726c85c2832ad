"""Transports that carry client requests to a controller."""

from amps_companion.infrastructure.transport.http_transport import HttpControllerTransport
from amps_companion.infrastructure.transport.inprocess import InProcessTransport

__all__ = [
    "HttpControllerTransport",
    "InProcessTransport",
]
