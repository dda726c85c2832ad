"""In-memory session table owned by the controller simulator."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from amps_companion.domain.session.entities import Session
from amps_companion.domain.session.repository import SessionRepository
from amps_companion.domain.shared.exceptions import EntityNotFoundError, ValidationError


class InMemorySessionTable(SessionRepository):
    """Sessions plus one lock per session.

    Every write (client command or progression tick) runs inside ``mutate``
    and every read copies under the same lock, so no reader can observe a
    half-applied transition.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def add(self, session: Session) -> Session:
        if session.id in self._sessions:
            raise ValidationError(f"Session '{session.id}' already exists", field="id")
        self._locks[session.id] = asyncio.Lock()
        self._sessions[session.id] = session
        return session.snapshot()

    async def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        async with self._locks[session_id]:
            return session.snapshot()

    @asynccontextmanager
    async def mutate(self, session_id: str) -> AsyncIterator[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            raise EntityNotFoundError("Session", session_id, message="Session not found")
        async with self._locks[session_id]:
            yield session

    async def list_all(self) -> list[Session]:
        snapshots: list[Session] = []
        for session_id in self.ids():
            snapshot = await self.get(session_id)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    def ids(self) -> list[str]:
        return list(self._sessions)

    def count(self) -> int:
        return len(self._sessions)

    def count_where(self, predicate: Callable[[Session], bool]) -> int:
        """Count sessions matching ``predicate`` without locking (read-only peek)."""
        return sum(1 for session in self._sessions.values() if predicate(session))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
