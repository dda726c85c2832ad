"""In-process playback controller.

Implements every controller operation against an owned session table and
drives autonomous track progression through a ``ProgressionTicker``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from amps_companion.domain.content.entities import Content
from amps_companion.domain.content.repository import ContentCatalog
from amps_companion.domain.controller.entities import (
    ConnectRequest,
    ConnectResponse,
    SessionCounts,
    SystemStatus,
)
from amps_companion.domain.session.entities import QueueItem, Session, SessionSettings
from amps_companion.domain.session.repository import SessionRepository
from amps_companion.domain.shared.constants import LimitConstants, SimulatorDefaults
from amps_companion.domain.shared.datetime_utils import utcnow
from amps_companion.domain.shared.enums import PlaybackAction, SessionStatus
from amps_companion.domain.shared.events import (
    DomainEvent,
    EventBus,
    QueueExhausted,
    TrackAdvanced,
)
from amps_companion.domain.shared.exceptions import (
    EntityNotFoundError,
    InvalidOperationError,
    UnauthorizedError,
    ValidationError,
)
from amps_companion.domain.shared.messages import ErrorMessages, LogTemplates
from amps_companion.domain.shared.models import Ack
from amps_companion.infrastructure.simulator.catalog import DemoCatalog
from amps_companion.infrastructure.simulator.session_table import InMemorySessionTable
from amps_companion.infrastructure.simulator.ticker import ProgressionTicker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Who is calling: the bearer credential and, once connected, the client id."""

    credential: str | None = None
    client_id: str | None = None

    @property
    def caller_key(self) -> str:
        if self.client_id:
            return self.client_id
        return f"key:{self.credential or ''}"


class ControllerSimulator:
    """A controller that lives in the client's own event loop.

    Each client (by id, or by credential before it has one) has its own
    current session. Participant counts follow join/leave calls only and can
    drift when a client disconnects without leaving.
    """

    def __init__(
        self,
        *,
        sessions: SessionRepository | None = None,
        catalog: ContentCatalog | None = None,
        event_bus: EventBus | None = None,
        version: str = SimulatorDefaults.VERSION,
        tick_seconds: float = SimulatorDefaults.TICK_SECONDS,
        accepted_api_key: str | None = None,
        auto_progress: bool = True,
    ) -> None:
        self._sessions = sessions or InMemorySessionTable()
        self._catalog = catalog or DemoCatalog()
        self._event_bus = event_bus
        self._version = version
        self._tick_seconds = tick_seconds
        self._accepted_api_key = accepted_api_key
        self._auto_progress = auto_progress

        self._clients: set[str] = set()
        self._current: dict[str, str] = {}
        self._last_heartbeat = utcnow()
        self._ticker = ProgressionTicker(self._on_tick, interval=tick_seconds)

    # ── Lifecycle ───────────────────────────────────────────────────

    def start(self) -> None:
        """Resume progression if any session is already playing."""
        self._sync_ticker()

    async def aclose(self) -> None:
        await self._ticker.stop()

    @property
    def ticker(self) -> ProgressionTicker:
        return self._ticker

    @property
    def connected_clients(self) -> frozenset[str]:
        return frozenset(self._clients)

    # ── Helpers ─────────────────────────────────────────────────────

    def _authorize(self, ctx: RequestContext) -> str:
        if not ctx.credential:
            raise UnauthorizedError(ErrorMessages.MISSING_CREDENTIAL)
        if self._accepted_api_key is not None and ctx.credential != self._accepted_api_key:
            raise UnauthorizedError(ErrorMessages.INVALID_CREDENTIAL)
        return ctx.caller_key

    def _require_current(self, caller: str) -> str:
        session_id = self._current.get(caller)
        if session_id is None or session_id not in self._session_ids():
            raise InvalidOperationError(
                operation="session command",
                current_state="no session",
                message=ErrorMessages.NO_ACTIVE_SESSION,
            )
        return session_id

    def _session_ids(self) -> set[str]:
        return set(self._sessions.ids())

    def _sync_ticker(self) -> None:
        if self._auto_progress and not self._ticker.is_running and self._any_progressing():
            self._ticker.start()

    def _any_progressing(self) -> bool:
        return self._sessions.count_where(lambda s: s.is_progressing) > 0

    async def _leave_current(self, caller: str) -> None:
        previous = self._current.pop(caller, None)
        if previous is None or previous not in self._session_ids():
            return
        async with self._sessions.mutate(previous) as session:
            session.leave()
            participants = session.participants
        logger.info(LogTemplates.SIM_SESSION_LEFT, caller, previous, participants)

    async def _publish(self, events: list[DomainEvent]) -> None:
        if self._event_bus is None:
            return
        for event in events:
            await self._event_bus.publish(event)

    # ── Connection ──────────────────────────────────────────────────

    async def connect(self, request: ConnectRequest, ctx: RequestContext) -> ConnectResponse:
        self._authorize(ctx)
        client_id = f"client-{uuid4().hex[:12]}"
        self._clients.add(client_id)

        # Reconnecting under a previous id (or with no id yet) keeps the caller's session.
        previous = ctx.caller_key
        self._clients.discard(previous)
        if previous in self._current:
            self._current[client_id] = self._current.pop(previous)

        self._last_heartbeat = utcnow()
        logger.info(LogTemplates.SIM_CLIENT_CONNECTED, client_id)
        return ConnectResponse(
            success=True, client_id=client_id, capabilities=list(request.capabilities)
        )

    async def disconnect(self, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        self._clients.discard(caller)
        self._current.pop(caller, None)
        logger.info(LogTemplates.SIM_CLIENT_DISCONNECTED, caller)
        return Ack()

    async def status(self) -> SystemStatus:
        self._last_heartbeat = utcnow()
        sessions = await self._sessions.list_all()
        return SystemStatus(
            connected=bool(self._clients),
            version=self._version,
            sessions=SessionCounts(
                active=sum(1 for session in sessions if session.status == SessionStatus.ACTIVE),
                total=len(sessions),
            ),
            last_heartbeat=self._last_heartbeat,
        )

    async def heartbeat(self, ctx: RequestContext) -> Ack:
        self._authorize(ctx)
        self._last_heartbeat = utcnow()
        return Ack()

    # ── Sessions ────────────────────────────────────────────────────

    async def list_sessions(self, ctx: RequestContext) -> list[Session]:
        self._authorize(ctx)
        return await self._sessions.list_all()

    async def create_session(
        self,
        name: str | None,
        settings: Mapping[str, Any] | None,
        ctx: RequestContext,
    ) -> Session:
        caller = self._authorize(ctx)
        if name is not None and not name.strip():
            raise ValidationError(ErrorMessages.EMPTY_SESSION_NAME, field="name")

        session = Session(
            id=f"session-{uuid4().hex[:12]}",
            settings=SessionSettings().merged(settings),
        )
        if name:
            session.name = name.strip()

        await self._leave_current(caller)
        await self._sessions.add(session)
        async with self._sessions.mutate(session.id) as live:
            live.join()
            created = live.snapshot()
        self._current[caller] = session.id

        logger.info(LogTemplates.SIM_SESSION_CREATED, created.id, created.name)
        return created

    async def join_session(self, session_id: str, ctx: RequestContext) -> Session:
        caller = self._authorize(ctx)
        if session_id not in self._session_ids():
            raise EntityNotFoundError("Session", session_id, message=ErrorMessages.SESSION_NOT_FOUND)

        if self._current.get(caller) == session_id:
            snapshot = await self._sessions.get(session_id)
            if snapshot is not None:
                return snapshot

        await self._leave_current(caller)
        async with self._sessions.mutate(session_id) as session:
            session.join()
            joined = session.snapshot()
        self._current[caller] = session_id

        logger.info(LogTemplates.SIM_SESSION_JOINED, caller, session_id, joined.participants)
        return joined

    async def leave_session(self, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        await self._leave_current(caller)
        return Ack()

    async def current_session(self, ctx: RequestContext) -> Session | None:
        caller = self._authorize(ctx)
        session_id = self._current.get(caller)
        if session_id is None:
            return None
        return await self._sessions.get(session_id)

    # ── Playback ────────────────────────────────────────────────────

    async def control_playback(self, action: PlaybackAction | str, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        session_id = self._require_current(caller)
        async with self._sessions.mutate(session_id) as session:
            session.apply(action)
        logger.info(LogTemplates.SIM_PLAYBACK_CONTROL, action, session_id)
        self._sync_ticker()
        return Ack()

    async def seek(self, position: float, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        session_id = self._require_current(caller)
        async with self._sessions.mutate(session_id) as session:
            session.seek(position)
        return Ack()

    async def set_volume(self, volume: float, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        session_id = self._require_current(caller)
        async with self._sessions.mutate(session_id) as session:
            session.set_volume(volume)
        return Ack()

    # ── Queue ───────────────────────────────────────────────────────

    async def get_queue(self, ctx: RequestContext) -> list[QueueItem]:
        caller = self._authorize(ctx)
        session_id = self._current.get(caller)
        if session_id is None:
            return []
        session = await self._sessions.get(session_id)
        return session.queue if session is not None else []

    async def add_to_queue(
        self, content_id: str, priority: int, ctx: RequestContext
    ) -> QueueItem:
        caller = self._authorize(ctx)
        if not content_id or not content_id.strip():
            raise ValidationError(ErrorMessages.EMPTY_CONTENT_ID, field="contentId")
        session_id = self._require_current(caller)

        content = await self._catalog.get(content_id)
        item = content.to_queue_item(
            f"queue-{uuid4().hex[:12]}",
            added_by=SimulatorDefaults.ADDED_BY,
            priority=priority,
        )
        async with self._sessions.mutate(session_id) as session:
            position = session.enqueue(item)

        logger.info(LogTemplates.SIM_QUEUE_ADDED, item.id, session_id, position)
        return item.model_copy()

    async def remove_from_queue(self, item_id: str, ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        session_id = self._require_current(caller)
        async with self._sessions.mutate(session_id) as session:
            removed = session.remove(item_id)
        if removed is not None:
            logger.info(LogTemplates.SIM_QUEUE_REMOVED, item_id, session_id)
        return Ack()

    async def reorder_queue(self, item_ids: list[str], ctx: RequestContext) -> Ack:
        caller = self._authorize(ctx)
        session_id = self._require_current(caller)
        async with self._sessions.mutate(session_id) as session:
            session.reorder(item_ids)
        logger.info(LogTemplates.SIM_QUEUE_REORDERED, session_id)
        return Ack()

    # ── Content ─────────────────────────────────────────────────────

    async def search_content(self, query: str, limit: int) -> list[Content]:
        limit = max(0, min(limit, LimitConstants.MAX_SEARCH_LIMIT))
        return await self._catalog.search(query, limit)

    async def get_content(self, content_id: str) -> Content:
        return await self._catalog.get(content_id)

    # ── Progression ─────────────────────────────────────────────────

    async def tick(self, seconds: float | None = None) -> bool:
        """Advance every playing session by one tick.

        Returns True while at least one session is still progressing.
        """
        step = self._tick_seconds if seconds is None else seconds
        events: list[DomainEvent] = []

        for session_id in self._sessions.ids():
            async with self._sessions.mutate(session_id) as session:
                if not session.is_progressing:
                    continue
                finished = session.advance(step)
                if finished is not None:
                    if session.current_track is not None:
                        logger.info(
                            LogTemplates.SIM_TRACK_ADVANCED, session_id, session.current_track.id
                        )
                        events.append(
                            TrackAdvanced(
                                session_id=session_id,
                                track_id=session.current_track.id,
                                track_title=session.current_track.title,
                            )
                        )
                    else:
                        logger.info(LogTemplates.SIM_QUEUE_EXHAUSTED, session_id)
                        events.append(
                            QueueExhausted(
                                session_id=session_id,
                                last_track_id=finished.id,
                                last_track_title=finished.title,
                            )
                        )
        await self._publish(events)
        # Handlers may have started playback while the events were published.
        return self._any_progressing()

    async def _on_tick(self) -> bool:
        return await self.tick()
