"""Session Client - owns one connection to a playback controller.

Handles the connect/disconnect lifecycle, the heartbeat keepalive, automatic
reconnection with linear backoff, and every session, queue and content
operation. All I/O goes through a ``ControllerTransport``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

import pydantic

from ...config.settings import ClientSettings
from ...domain.content.entities import Content
from ...domain.controller.entities import (
    ConnectionStatus,
    ConnectRequest,
    ConnectResponse,
    SystemStatus,
)
from ...domain.session.entities import QueueItem, Session, SessionSettings, clamp_volume
from ...domain.shared.constants import ApiPaths, ClientDefaults
from ...domain.shared.enums import HttpMethod, PlaybackAction
from ...domain.shared.events import (
    ClientConnected,
    ClientDisconnected,
    ConnectionLost,
    ConnectionRestored,
    DomainEvent,
    ReconnectExhausted,
)
from ...domain.shared.exceptions import (
    DomainError,
    ExhaustedReconnectError,
    ProtocolError,
    TransportError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.models import Ack

if TYPE_CHECKING:
    from ...domain.shared.events import EventBus
    from ..interfaces.transport import ControllerTransport

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)

_MALFORMED_STATUS = 502


def _segment(value: str) -> str:
    return quote(value, safe="")


class SessionClient:
    """Client side of the controller protocol.

    Transport failures on ordinary calls surface to the caller and leave the
    connection alone. Only a failed heartbeat starts reconnection.
    """

    def __init__(
        self,
        transport: ControllerTransport,
        *,
        settings: ClientSettings | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or ClientSettings()
        self._event_bus = event_bus

        self._connected = False
        self._reconnecting = False
        self._reconnect_attempts = 0
        # Bumped by disconnect(); a reconnection started under an older value aborts.
        self._generation = 0
        self._exhausted: ExhaustedReconnectError | None = None
        self._client_id: str | None = None
        self._current_session_id: str | None = None

        self._heartbeat_task: asyncio.Task[None] | None = None
        self._heartbeat_lock = asyncio.Lock()
        self._session_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ── State ───────────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def reconnecting(self) -> bool:
        return self._reconnecting

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def exhausted(self) -> ExhaustedReconnectError | None:
        """The sticky error left by the last failed reconnection, if any."""
        return self._exhausted

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def current_session_id(self) -> str | None:
        return self._current_session_id

    @property
    def transport(self) -> ControllerTransport:
        return self._transport

    def connection_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            connected=self._connected,
            reconnecting=self._reconnecting,
            reconnect_attempts=self._reconnect_attempts,
            max_reconnect_attempts=self._settings.max_reconnect_attempts,
            exhausted=self._exhausted is not None,
            client_id=self._client_id,
        )

    # ── Lifecycle ───────────────────────────────────────────────────

    async def connect(self) -> bool:
        """Perform the handshake and start the heartbeat.

        Returns:
            True once connected, False if the controller refused the client.

        Raises:
            TransportError: If the controller could not be reached.
        """
        if self._connected:
            logger.info(LogTemplates.CLIENT_ALREADY_CONNECTED)
            return True

        self._exhausted = None
        logger.info(LogTemplates.CLIENT_CONNECTING)

        try:
            response = await self._handshake()
        except ProtocolError as e:
            logger.warning(LogTemplates.CLIENT_CONNECT_REJECTED, e.message)
            return False
        except TransportError as e:
            logger.error(LogTemplates.OPERATION_FAILED, "connect", e)
            raise

        if not response.success:
            logger.warning(LogTemplates.CLIENT_CONNECT_REJECTED, response.error or "no reason given")
            return False

        self._connected = True
        self._reconnect_attempts = 0
        self._start_heartbeat()

        logger.info(LogTemplates.CLIENT_CONNECTED, self._client_id)
        await self._publish(ClientConnected(client_id=self._client_id))
        return True

    async def disconnect(self) -> None:
        """Stop the heartbeat and tell the controller, best effort.

        Local state is cleared even if the controller cannot be notified.
        """
        was_connected = self._connected
        client_id = self._client_id
        self._connected = False
        self._generation += 1

        await self._stop_heartbeat()

        if was_connected:
            try:
                await self._transport.request(HttpMethod.POST, ApiPaths.DISCONNECT)
            except DomainError as e:
                logger.warning(LogTemplates.CLIENT_DISCONNECT_NOTIFY_FAILED, e)

        self._reconnecting = False
        self._reconnect_attempts = 0
        self._client_id = None
        self._current_session_id = None
        self._session_locks.clear()
        self._transport.set_client_id(None)

        logger.info(LogTemplates.CLIENT_DISCONNECTED)
        await self._publish(ClientDisconnected(client_id=client_id))

    async def aclose(self) -> None:
        await self.disconnect()
        await self._transport.aclose()

    async def __aenter__(self) -> SessionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _handshake(self) -> ConnectResponse:
        request = ConnectRequest(
            client_type=self._settings.client_type,
            version=self._settings.version,
            capabilities=list(self._settings.capabilities),
        )
        data = await self._transport.request(
            HttpMethod.POST, ApiPaths.CONNECT, json=request.to_wire()
        )
        response = self._parse(ConnectResponse, data)
        if response.success:
            self._client_id = response.client_id
            self._transport.set_client_id(response.client_id)
        return response

    # ── Heartbeat & reconnection ────────────────────────────────────

    def _start_heartbeat(self) -> None:
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.debug(LogTemplates.HEARTBEAT_STARTED, self._settings.heartbeat_interval_s)

    async def _stop_heartbeat(self) -> None:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is None:
            return

        task.cancel()
        if task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug(LogTemplates.HEARTBEAT_STOPPED)

    async def _heartbeat_loop(self) -> None:
        interval = self._settings.heartbeat_interval_s

        while self._connected:
            await asyncio.sleep(interval)
            if not self._connected:
                break
            try:
                await self.heartbeat_once()
            except Exception:
                logger.exception(LogTemplates.HEARTBEAT_FAILED, "unexpected error")

    async def heartbeat_once(self) -> bool:
        """Run one keepalive cycle, reconnecting if the heartbeat cannot get through.

        Returns:
            True if the client is connected afterwards.
        """
        if not self._connected:
            return False
        if self._heartbeat_lock.locked():
            logger.debug(LogTemplates.HEARTBEAT_SKIPPED_IN_FLIGHT)
            return False

        async with self._heartbeat_lock:
            try:
                return await self._send_heartbeat()
            except ProtocolError as e:
                logger.warning(LogTemplates.HEARTBEAT_FAILED, e)
                return False
            except TransportError as e:
                logger.warning(LogTemplates.HEARTBEAT_FAILED, e)
                return await self._reconnect(e)

    async def _send_heartbeat(self) -> bool:
        data = await self._transport.request(HttpMethod.POST, ApiPaths.HEARTBEAT)
        return self._parse(Ack, data if data is not None else {}).success

    def _abandoned(self, generation: int) -> bool:
        if generation == self._generation:
            return False
        logger.info(LogTemplates.RECONNECT_ABANDONED)
        return True

    async def _reconnect(self, cause: DomainError) -> bool:
        generation = self._generation
        self._connected = False
        self._reconnecting = True
        await self._publish(ConnectionLost(reason=cause.message))

        max_attempts = self._settings.max_reconnect_attempts
        try:
            while self._reconnect_attempts < max_attempts:
                if self._abandoned(generation):
                    return False
                self._reconnect_attempts += 1
                attempt = self._reconnect_attempts
                delay = attempt * self._settings.reconnect_base_delay_s
                logger.info(LogTemplates.RECONNECT_ATTEMPT, attempt, max_attempts, delay)
                await asyncio.sleep(delay)
                if self._abandoned(generation):
                    return False

                try:
                    response = await self._handshake()
                    healthy = response.success and await self._send_heartbeat()
                except DomainError as e:
                    logger.warning(LogTemplates.RECONNECT_ATTEMPT_FAILED, attempt, e)
                    continue

                if self._abandoned(generation):
                    if response.success and self._client_id == response.client_id:
                        self._client_id = None
                        self._transport.set_client_id(None)
                    return False

                if healthy:
                    self._reconnect_attempts = 0
                    self._connected = True
                    self._start_heartbeat()
                    logger.info(LogTemplates.RECONNECT_SUCCEEDED, attempt)
                    await self._publish(ConnectionRestored(attempts=attempt))
                    return True
                logger.warning(
                    LogTemplates.RECONNECT_ATTEMPT_FAILED, attempt, response.error or "rejected"
                )

            self._exhausted = ExhaustedReconnectError(max_attempts)
            logger.error(LogTemplates.RECONNECT_EXHAUSTED, max_attempts)
            await self._publish(ReconnectExhausted(attempts=max_attempts, reason=cause.message))
            return False
        finally:
            self._reconnecting = False

    # ── Helpers ─────────────────────────────────────────────────────

    async def _publish(self, event: DomainEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event)

    async def _call(
        self,
        operation: str,
        method: HttpMethod,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        try:
            return await self._transport.request(
                method, path, json=json, params=params, authenticated=authenticated
            )
        except DomainError as e:
            logger.error(LogTemplates.OPERATION_FAILED, operation, e)
            raise

    def _session_lock(self) -> asyncio.Lock:
        return self._session_locks[self._current_session_id or ""]

    @staticmethod
    def _parse(model: type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            raise ProtocolError(
                ErrorMessages.MALFORMED_RESPONSE,
                status=_MALFORMED_STATUS,
                code="MALFORMED_RESPONSE",
            ) from e

    @classmethod
    def _parse_list(cls, model: type[M], data: Any) -> list[M]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProtocolError(
                ErrorMessages.MALFORMED_RESPONSE,
                status=_MALFORMED_STATUS,
                code="MALFORMED_RESPONSE",
            )
        return [cls._parse(model, item) for item in data]

    # ── System ──────────────────────────────────────────────────────

    async def get_system_status(self) -> SystemStatus:
        data = await self._call(
            "getSystemStatus", HttpMethod.GET, ApiPaths.STATUS, authenticated=False
        )
        return self._parse(SystemStatus, data)

    # ── Sessions ────────────────────────────────────────────────────

    async def list_sessions(self) -> list[Session]:
        data = await self._call("listSessions", HttpMethod.GET, ApiPaths.SESSIONS)
        return self._parse_list(Session, data)

    async def create_session(
        self,
        name: str,
        settings: SessionSettings | Mapping[str, Any] | None = None,
    ) -> Session:
        """Create a session and make it current.

        ``settings`` may be partial; the controller fills in the defaults.
        """
        body: dict[str, Any] = {"name": name}
        if isinstance(settings, SessionSettings):
            body["settings"] = settings.to_wire()
        elif settings is not None:
            body["settings"] = dict(settings)

        data = await self._call("createSession", HttpMethod.POST, ApiPaths.SESSIONS, json=body)
        session = self._parse(Session, data)
        self._current_session_id = session.id
        return session

    async def join_session(self, session_id: str) -> Session:
        path = ApiPaths.SESSION_JOIN.format(session_id=_segment(session_id))
        data = await self._call("joinSession", HttpMethod.POST, path)
        session = self._parse(Session, data)
        self._current_session_id = session.id
        return session

    async def leave_session(self) -> None:
        if self._current_session_id is None:
            return
        async with self._session_lock():
            await self._call("leaveSession", HttpMethod.POST, ApiPaths.SESSION_LEAVE)
        self._session_locks.pop(self._current_session_id, None)
        self._current_session_id = None

    async def get_current_session(self) -> Session | None:
        data = await self._call("getCurrentSession", HttpMethod.GET, ApiPaths.SESSION_CURRENT)
        if data is None:
            self._current_session_id = None
            return None
        session = self._parse(Session, data)
        self._current_session_id = session.id
        return session

    # ── Playback ────────────────────────────────────────────────────

    async def control_playback(self, action: PlaybackAction | str) -> None:
        async with self._session_lock():
            await self._call(
                "controlPlayback",
                HttpMethod.POST,
                ApiPaths.SESSION_CONTROL,
                json={"action": str(action)},
            )

    async def seek_to(self, position: float) -> None:
        async with self._session_lock():
            await self._call(
                "seekTo", HttpMethod.POST, ApiPaths.SESSION_SEEK, json={"position": float(position)}
            )

    async def set_volume(self, volume: float) -> None:
        """Set the session volume, clamped to 0-100 before sending."""
        async with self._session_lock():
            await self._call(
                "setVolume",
                HttpMethod.POST,
                ApiPaths.SESSION_VOLUME,
                json={"volume": clamp_volume(volume)},
            )

    # ── Queue ───────────────────────────────────────────────────────

    async def get_queue(self) -> list[QueueItem]:
        data = await self._call("getQueue", HttpMethod.GET, ApiPaths.QUEUE)
        return self._parse_list(QueueItem, data)

    async def add_to_queue(self, content_id: str, priority: int = 0) -> QueueItem:
        async with self._session_lock():
            data = await self._call(
                "addToQueue",
                HttpMethod.POST,
                ApiPaths.QUEUE,
                json={"contentId": content_id, "priority": priority},
            )
        return self._parse(QueueItem, data)

    async def remove_from_queue(self, item_id: str) -> None:
        """Remove a queue entry. Unknown ids succeed without changing anything."""
        path = ApiPaths.QUEUE_ITEM.format(item_id=_segment(item_id))
        async with self._session_lock():
            await self._call("removeFromQueue", HttpMethod.DELETE, path)

    async def reorder_queue(self, ordered_ids: Iterable[str]) -> None:
        async with self._session_lock():
            await self._call(
                "reorderQueue",
                HttpMethod.POST,
                ApiPaths.QUEUE_REORDER,
                json={"queueItemIds": list(ordered_ids)},
            )

    # ── Content ─────────────────────────────────────────────────────

    async def search_content(
        self, query: str, limit: int = ClientDefaults.SEARCH_LIMIT
    ) -> list[Content]:
        data = await self._call(
            "searchContent",
            HttpMethod.GET,
            ApiPaths.CONTENT_SEARCH,
            params={"q": query, "limit": limit},
            authenticated=False,
        )
        return self._parse_list(Content, data)

    async def get_content(self, content_id: str) -> Content:
        path = ApiPaths.CONTENT_ITEM.format(content_id=_segment(content_id))
        data = await self._call("getContent", HttpMethod.GET, path, authenticated=False)
        return self._parse(Content, data)
