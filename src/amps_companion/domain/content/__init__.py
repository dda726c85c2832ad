"""
Content Bounded Context

Read-only catalog entries a session can queue.
"""

from amps_companion.domain.content.entities import Content, ContentMetadata
from amps_companion.domain.content.repository import ContentCatalog

__all__ = [
    "Content",
    "ContentMetadata",
    "ContentCatalog",
]
