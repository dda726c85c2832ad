"""Content catalog interface consumed by a controller."""

from abc import ABC, abstractmethod

from amps_companion.domain.content.entities import Content


class ContentCatalog(ABC):
    """Read-only access to the catalog a controller plays from."""

    @abstractmethod
    async def search(self, query: str, limit: int) -> list[Content]:
        """Return at most ``limit`` entries, best matches first."""
        ...

    @abstractmethod
    async def get(self, content_id: str) -> Content:
        """Look up one entry.

        Raises:
            EntityNotFoundError: If the catalog cannot resolve ``content_id``.
        """
        ...
