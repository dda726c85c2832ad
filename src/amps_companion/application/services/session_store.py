"""Client State Store - last-known controller state for UI layers.

Wraps a ``SessionClient``: every action calls the client, then re-fetches the
current session from the controller instead of patching local state. A
periodic refresh keeps the snapshot current while connected.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, Field

from ...config.settings import StoreSettings
from ...domain.content.entities import Content
from ...domain.controller.entities import SystemStatus
from ...domain.session.entities import QueueItem, Session, SessionSettings
from ...domain.shared.constants import ClientDefaults
from ...domain.shared.enums import ConnectionState, ErrorKind, PlaybackAction
from ...domain.shared.events import ConnectionLost, ConnectionRestored, ReconnectExhausted
from ...domain.shared.exceptions import DomainError, ExhaustedReconnectError
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.shared.events import EventBus
    from .session_client import SessionClient

logger = logging.getLogger(__name__)

T = TypeVar("T")
StoreListener = Callable[["SessionStore"], Any]


class StoreSnapshot(BaseModel):
    """Point-in-time copy of the store's state."""

    connected: bool = False
    connecting: bool = False
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    error: str | None = None
    error_kind: ErrorKind | None = None
    system_status: SystemStatus | None = None
    current_session: Session | None = None
    search_results: list[Content] = Field(default_factory=list)
    searching: bool = False


class SessionStore:
    """Holds the system status and current session a UI renders from.

    User actions record failures as ``ErrorKind.OPERATION`` and re-raise.
    Background refreshes record failures and never raise. Connection events
    from the client's event bus update ``error_kind`` to ``connection`` or
    ``reconnect_exhausted``.
    """

    def __init__(
        self,
        client: SessionClient,
        *,
        settings: StoreSettings | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or StoreSettings()
        self._event_bus = event_bus

        self._connected = False
        self._connecting = False
        self._error: str | None = None
        self._error_kind: ErrorKind | None = None
        self._system_status: SystemStatus | None = None
        self._current_session: Session | None = None
        self._search_results: list[Content] = []
        self._searching = False

        self._listeners: list[StoreListener] = []
        self._refreshing = False
        self._refresh_task: asyncio.Task[None] | None = None

        if self._event_bus is not None:
            self._event_bus.subscribe(ConnectionLost, self._on_connection_lost)
            self._event_bus.subscribe(ConnectionRestored, self._on_connection_restored)
            self._event_bus.subscribe(ReconnectExhausted, self._on_reconnect_exhausted)

    # ── State ───────────────────────────────────────────────────────

    @property
    def client(self) -> SessionClient:
        return self._client

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def error_kind(self) -> ErrorKind | None:
        return self._error_kind

    @property
    def system_status(self) -> SystemStatus | None:
        return self._system_status

    @property
    def current_session(self) -> Session | None:
        return self._current_session

    @property
    def search_results(self) -> list[Content]:
        return list(self._search_results)

    @property
    def searching(self) -> bool:
        return self._searching

    @property
    def connection_state(self) -> ConnectionState:
        if self._connecting:
            return ConnectionState.CONNECTING
        if self._connected:
            return ConnectionState.CONNECTED
        if self._error is not None:
            return ConnectionState.ERROR
        return ConnectionState.DISCONNECTED

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            connected=self._connected,
            connecting=self._connecting,
            connection_state=self.connection_state,
            error=self._error,
            error_kind=self._error_kind,
            system_status=self._system_status,
            current_session=self._current_session,
            search_results=list(self._search_results),
            searching=self._searching,
        )

    # ── Listeners ───────────────────────────────────────────────────

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register ``listener`` to be called with the store after each change.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(LogTemplates.STORE_LISTENER_FAILED)

    async def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self, f"_{name}", value)
        await self._notify()

    async def _record_error(self, message: str, kind: ErrorKind) -> None:
        # A connection problem outranks an operation failure until it is resolved.
        if kind == ErrorKind.OPERATION and self._error_kind in (
            ErrorKind.CONNECTION,
            ErrorKind.RECONNECT_EXHAUSTED,
        ):
            return
        await self._update(error=message, error_kind=kind)

    async def clear_error(self) -> None:
        await self._update(error=None, error_kind=None)

    # ── Lifecycle ───────────────────────────────────────────────────

    async def start(self) -> bool:
        """Connect if ``auto_connect`` is enabled. Failures are recorded, not raised."""
        if not self._settings.auto_connect or self._connected:
            return self._connected
        try:
            return await self.connect()
        except DomainError:
            return False

    async def connect(self) -> bool:
        if self._connected:
            return True

        await self._update(connecting=True, error=None, error_kind=None)
        try:
            accepted = await self._client.connect()
        except DomainError as e:
            logger.warning(LogTemplates.STORE_ACTION_FAILED, "connect", e.message)
            await self._update(
                connecting=False,
                connected=False,
                error=e.message,
                error_kind=ErrorKind.CONNECTION,
            )
            raise

        if not accepted:
            await self._update(
                connecting=False,
                connected=False,
                error=ErrorMessages.CONNECTION_FAILED,
                error_kind=ErrorKind.CONNECTION,
            )
            return False

        await self._update(connecting=False, connected=True, error=None, error_kind=None)
        self._start_refresh()
        await self.refresh()
        return True

    async def disconnect(self) -> None:
        await self._stop_refresh()
        try:
            await self._client.disconnect()
        finally:
            await self._update(
                connected=False,
                connecting=False,
                error=None,
                error_kind=None,
                system_status=None,
                current_session=None,
            )

    async def aclose(self) -> None:
        """Stop background work and detach from the event bus."""
        await self._stop_refresh()
        if self._event_bus is not None:
            self._event_bus.unsubscribe(ConnectionLost, self._on_connection_lost)
            self._event_bus.unsubscribe(ConnectionRestored, self._on_connection_restored)
            self._event_bus.unsubscribe(ReconnectExhausted, self._on_reconnect_exhausted)
        self._listeners.clear()

    # ── Periodic refresh ────────────────────────────────────────────

    def _start_refresh(self) -> None:
        if self._refreshing:
            return

        self._refreshing = True
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.debug(LogTemplates.STORE_REFRESH_STARTED, self._settings.refresh_interval_s)

    async def _stop_refresh(self) -> None:
        self._refreshing = False

        task = self._refresh_task
        self._refresh_task = None
        if task is not None:
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            logger.debug(LogTemplates.STORE_REFRESH_STOPPED)

    async def _refresh_loop(self) -> None:
        interval = self._settings.refresh_interval_s

        while self._refreshing:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break

            if not self._client.connected:
                continue
            try:
                await self.refresh()
            except Exception:
                logger.exception(LogTemplates.STORE_REFRESH_FAILED, "snapshot", "unexpected error")

    async def refresh(self) -> None:
        """Re-fetch system status and the current session together."""
        await asyncio.gather(self.refresh_system_status(), self.refresh_current_session())

    async def refresh_system_status(self) -> SystemStatus | None:
        try:
            status = await self._client.get_system_status()
        except DomainError as e:
            logger.warning(LogTemplates.STORE_REFRESH_FAILED, "system status", e)
            await self._record_error(e.message, ErrorKind.OPERATION)
            return None
        await self._update(system_status=status)
        return status

    async def refresh_current_session(self) -> Session | None:
        try:
            session = await self._client.get_current_session()
        except DomainError as e:
            logger.warning(LogTemplates.STORE_REFRESH_FAILED, "current session", e)
            await self._record_error(e.message, ErrorKind.OPERATION)
            return None
        await self._update(current_session=session)
        return session

    # ── Actions ─────────────────────────────────────────────────────

    async def _action(
        self, name: str, call: Callable[[], Awaitable[T]], *, refresh: bool = True
    ) -> T:
        try:
            result = await call()
        except DomainError as e:
            logger.warning(LogTemplates.STORE_ACTION_FAILED, name, e.message)
            await self._record_error(e.message, ErrorKind.OPERATION)
            raise
        if refresh:
            await self.refresh_current_session()
        return result

    async def create_session(
        self, name: str, settings: SessionSettings | Mapping[str, Any] | None = None
    ) -> Session:
        return await self._action(
            "create_session", lambda: self._client.create_session(name, settings)
        )

    async def join_session(self, session_id: str) -> Session:
        return await self._action("join_session", lambda: self._client.join_session(session_id))

    async def leave_session(self) -> None:
        await self._action("leave_session", self._client.leave_session, refresh=False)
        await self._update(current_session=None)

    async def control_playback(self, action: PlaybackAction | str) -> None:
        await self._action("control_playback", lambda: self._client.control_playback(action))

    async def seek_to(self, position: float) -> None:
        await self._action("seek_to", lambda: self._client.seek_to(position))

    async def set_volume(self, volume: float) -> None:
        await self._action("set_volume", lambda: self._client.set_volume(volume))

    async def add_to_queue(self, content_id: str, priority: int = 0) -> QueueItem:
        return await self._action(
            "add_to_queue", lambda: self._client.add_to_queue(content_id, priority)
        )

    async def remove_from_queue(self, item_id: str) -> None:
        await self._action("remove_from_queue", lambda: self._client.remove_from_queue(item_id))

    async def reorder_queue(self, ordered_ids: Iterable[str]) -> None:
        ids = list(ordered_ids)
        await self._action("reorder_queue", lambda: self._client.reorder_queue(ids))

    async def search_content(
        self, query: str, limit: int = ClientDefaults.SEARCH_LIMIT
    ) -> list[Content]:
        """Search the catalog. A blank query clears the results without a call."""
        if not query.strip():
            await self._update(search_results=[], searching=False)
            return []

        await self._update(searching=True)
        try:
            results = await self._action(
                "search_content",
                lambda: self._client.search_content(query, limit),
                refresh=False,
            )
        except DomainError:
            await self._update(search_results=[], searching=False)
            raise
        await self._update(search_results=results, searching=False)
        return results

    async def get_content(self, content_id: str) -> Content:
        return await self._action(
            "get_content", lambda: self._client.get_content(content_id), refresh=False
        )

    # ── Connection events ───────────────────────────────────────────

    async def _on_connection_lost(self, event: ConnectionLost) -> None:
        await self._update(
            connected=False,
            error=event.reason or ErrorMessages.CONNECTION_FAILED,
            error_kind=ErrorKind.CONNECTION,
        )

    async def _on_connection_restored(self, event: ConnectionRestored) -> None:
        await self._update(connected=True, error=None, error_kind=None)

    async def _on_reconnect_exhausted(self, event: ReconnectExhausted) -> None:
        await self._stop_refresh()
        await self._update(
            connected=False,
            error=ExhaustedReconnectError(event.attempts).message,
            error_kind=ErrorKind.RECONNECT_EXHAUSTED,
        )
