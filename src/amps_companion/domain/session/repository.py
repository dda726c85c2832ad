"""
Session Repository Interface

Abstract base class defining how a controller stores sessions.
Implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from amps_companion.domain.session.entities import Session


class SessionRepository(ABC):
    """Abstract store of live sessions keyed by id.

    All mutation goes through ``mutate``, which hands out the live aggregate
    while holding that session's lock. Reads return detached snapshots.
    """

    @abstractmethod
    async def add(self, session: Session) -> Session:
        """Store a new session.

        Args:
            session: The session to store. Its id must be unused.

        Returns:
            A snapshot of the stored session.
        """
        ...

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Retrieve a snapshot of a session.

        Args:
            session_id: The session id.

        Returns:
            A detached copy, or None if the id is unknown.
        """
        ...

    @abstractmethod
    def mutate(self, session_id: str) -> AbstractAsyncContextManager[Session]:
        """Lock a session and yield the live aggregate for in-place mutation.

        Raises:
            EntityNotFoundError: If the id is unknown.
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[Session]:
        """Snapshots of every session, in creation order."""
        ...

    @abstractmethod
    def ids(self) -> list[str]:
        """Ids of every session, in creation order."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def count_where(self, predicate: Callable[[Session], bool]) -> int:
        """Count sessions matching ``predicate``."""
        ...
