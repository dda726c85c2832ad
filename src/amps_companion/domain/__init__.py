"""
Domain Layer

Contains the protocol types and rules shared by client and controller:
- shared/: Cross-cutting types, enums, events and exceptions
- session/: Session aggregate, queue items and playback transitions
- content/: Catalog entries
- controller/: System status and the connect handshake
"""

from amps_companion.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
