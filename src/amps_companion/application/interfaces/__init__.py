"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters.
"""

from amps_companion.application.interfaces.transport import ControllerTransport

__all__ = [
    "ControllerTransport",
]
