"""
Tests for the Session Client

Tests for:
- Connection lifecycle (connect, reject, transport failure, disconnect)
- Session, playback, queue and content operations against the simulator
- Heartbeat and automatic reconnection with linear backoff
- Response parsing and path escaping
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from amps_companion.application.services.session_client import SessionClient
from amps_companion.config.settings import ClientSettings
from amps_companion.domain.shared.enums import PlaybackAction, SessionStatus
from amps_companion.domain.shared.events import (
    ClientConnected,
    ConnectionLost,
    ConnectionRestored,
    EventBus,
    ReconnectExhausted,
)
from amps_companion.domain.shared.exceptions import (
    ExhaustedReconnectError,
    ProtocolError,
    TransportError,
)
from amps_companion.infrastructure.simulator.controller import ControllerSimulator
from amps_companion.infrastructure.simulator.routes import SimulatorRouter
from amps_companion.infrastructure.transport.inprocess import InProcessTransport


def record(bus: EventBus, event_type: type) -> list:
    received: list = []

    async def handler(event) -> None:
        received.append(event)

    bus.subscribe(event_type, handler)
    return received


# =============================================================================
# Connection Lifecycle
# =============================================================================


class TestConnectionLifecycle:
    """Tests for connect and disconnect."""

    @pytest.mark.asyncio
    async def test_connect_success(self, client, event_bus):
        events = record(event_bus, ClientConnected)

        assert await client.connect() is True

        assert client.connected is True
        assert client.client_id.startswith("client-")
        assert client.transport.client_id == client.client_id
        assert events[0].client_id == client.client_id

        status = client.connection_status()
        assert status.connected is True
        assert status.reconnect_attempts == 0
        assert status.max_reconnect_attempts == 3
        assert status.exhausted is False

    @pytest.mark.asyncio
    async def test_connect_twice_is_noop(self, connected_client):
        client_id = connected_client.client_id

        assert await connected_client.connect() is True
        assert connected_client.client_id == client_id

    @pytest.mark.asyncio
    async def test_connect_rejected_returns_false(self, client_settings):
        simulator = ControllerSimulator(accepted_api_key="secret", auto_progress=False)
        transport = InProcessTransport(SimulatorRouter(simulator), api_key="wrong")
        client = SessionClient(transport, settings=client_settings)

        assert await client.connect() is False
        assert client.connected is False
        assert client.client_id is None

    @pytest.mark.asyncio
    async def test_connect_transport_failure_raises(self, client, transport):
        await transport.aclose()

        with pytest.raises(TransportError):
            await client.connect()
        assert client.connected is False

    @pytest.mark.asyncio
    async def test_disconnect_clears_state(self, connected_client, simulator):
        await connected_client.create_session("Bye")

        await connected_client.disconnect()

        assert connected_client.connected is False
        assert connected_client.client_id is None
        assert connected_client.current_session_id is None
        assert connected_client.transport.client_id is None
        assert simulator.connected_clients == frozenset()

    @pytest.mark.asyncio
    async def test_disconnect_is_best_effort(self, connected_client, transport):
        await transport.aclose()

        await connected_client.disconnect()

        assert connected_client.connected is False
        assert connected_client.client_id is None

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_transport(self, transport, client_settings):
        async with SessionClient(transport, settings=client_settings) as client:
            assert await client.connect() is True

        assert client.connected is False
        with pytest.raises(TransportError, match="closed"):
            await transport.request("GET", "/status", authenticated=False)


# =============================================================================
# Operations
# =============================================================================


class TestSessionLifecycle:
    """End-to-end flow against the simulator."""

    @pytest.mark.asyncio
    async def test_full_session_flow(self, connected_client, simulator):
        client = connected_client

        status = await client.get_system_status()
        assert status.connected is True

        session = await client.create_session("Party", {"volume": 50})
        assert session.name == "Party"
        assert session.settings.volume == 50
        assert session.participants == 1
        assert client.current_session_id == session.id

        results = await client.search_content("Mock", 2)
        assert len(results) == 2
        first = await client.add_to_queue(results[0].id)
        second = await client.add_to_queue(results[1].id)
        assert [i.id for i in await client.get_queue()] == [first.id, second.id]

        await client.control_playback(PlaybackAction.PLAY)
        current = await client.get_current_session()
        assert current.status == SessionStatus.ACTIVE
        assert current.current_track.id == first.id
        assert [i.id for i in current.queue] == [second.id]

        await client.seek_to(30)
        await client.control_playback("pause")
        current = await client.get_current_session()
        assert current.status == SessionStatus.PAUSED
        assert current.current_track.position == 30

        await client.leave_session()
        assert client.current_session_id is None
        assert await client.get_current_session() is None

        sessions = await client.list_sessions()
        assert sessions[0].participants == 0

    @pytest.mark.asyncio
    async def test_join_session(self, connected_client, simulator, ctx):
        other = await simulator.create_session("Theirs", None, ctx)

        joined = await connected_client.join_session(other.id)

        assert joined.participants == 2
        assert connected_client.current_session_id == other.id

    @pytest.mark.asyncio
    async def test_join_unknown_session_is_not_found(self, connected_client):
        with pytest.raises(ProtocolError) as exc_info:
            await connected_client.join_session("missing")

        assert exc_info.value.status == 404
        assert exc_info.value.is_not_found
        assert exc_info.value.message == "Session not found"

    @pytest.mark.asyncio
    async def test_seek_without_track_is_conflict(self, connected_client):
        await connected_client.create_session("Empty")

        with pytest.raises(ProtocolError) as exc_info:
            await connected_client.seek_to(10)

        assert exc_info.value.status == 409
        assert exc_info.value.is_invalid_state

    @pytest.mark.asyncio
    async def test_remove_unknown_item_succeeds(self, connected_client):
        await connected_client.create_session("Q")
        item = await connected_client.add_to_queue("content-1")

        await connected_client.remove_from_queue("does-not-exist")
        await connected_client.remove_from_queue("does-not-exist")

        assert [i.id for i in await connected_client.get_queue()] == [item.id]

    @pytest.mark.asyncio
    async def test_reorder_queue(self, connected_client):
        await connected_client.create_session("Q")
        a = await connected_client.add_to_queue("content-1")
        b = await connected_client.add_to_queue("content-2")

        await connected_client.reorder_queue([b.id, a.id])

        assert [i.id for i in await connected_client.get_queue()] == [b.id, a.id]

    @pytest.mark.asyncio
    async def test_priority_items_play_first(self, connected_client):
        await connected_client.create_session("Q")
        await connected_client.add_to_queue("content-1")
        urgent = await connected_client.add_to_queue("content-2", priority=3)

        queue = await connected_client.get_queue()
        assert queue[0].id == urgent.id

    @pytest.mark.parametrize(("requested", "sent"), [(150, 100), (-5, 0), (42, 42)])
    @pytest.mark.asyncio
    async def test_volume_clamped(self, connected_client, transport, requested, sent):
        await connected_client.create_session("V")

        with patch.object(transport, "request", wraps=transport.request) as spy:
            await connected_client.set_volume(requested)

        assert spy.call_args.kwargs["json"] == {"volume": sent}
        current = await connected_client.get_current_session()
        assert current.settings.volume == sent

    @pytest.mark.asyncio
    async def test_get_content(self, client):
        content = await client.get_content("content-4")

        assert content.title == "Mock Track 4"
        assert content.metadata.year == 2020

    @pytest.mark.asyncio
    async def test_leave_without_session_makes_no_call(self, connected_client, transport):
        with patch.object(transport, "request", new=AsyncMock()) as mock_request:
            await connected_client.leave_session()

        mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_operation_transport_error_keeps_connection(self, connected_client):
        """Ordinary calls surface transport errors without touching the connection."""
        with patch.object(
            connected_client.transport,
            "request",
            new=AsyncMock(side_effect=TransportError("unreachable")),
        ):
            with pytest.raises(TransportError):
                await connected_client.list_sessions()

        assert connected_client.connected is True
        assert connected_client.reconnecting is False


class TestResponseHandling:
    """Tests for parsing and request shaping."""

    @pytest.mark.asyncio
    async def test_malformed_response(self, client):
        with patch.object(client.transport, "request", new=AsyncMock(return_value={"bogus": 1})):
            with pytest.raises(ProtocolError) as exc_info:
                await client.get_system_status()

        assert exc_info.value.code == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_non_list_response_is_malformed(self, client):
        with patch.object(client.transport, "request", new=AsyncMock(return_value={"a": 1})):
            with pytest.raises(ProtocolError, match="Malformed response"):
                await client.list_sessions()

    @pytest.mark.asyncio
    async def test_path_segments_escaped(self, client):
        session_json = {"id": "a/b", "name": "Slash"}
        with patch.object(
            client.transport, "request", new=AsyncMock(return_value=session_json)
        ) as mock_request:
            await client.join_session("a/b")

        assert mock_request.call_args.args[1] == "/sessions/a%2Fb/join"

    @pytest.mark.asyncio
    async def test_content_calls_are_unauthenticated(self, client):
        with patch.object(
            client.transport, "request", new=AsyncMock(return_value=[])
        ) as mock_request:
            await client.search_content("jazz", 5)

        assert mock_request.call_args.kwargs["params"] == {"q": "jazz", "limit": 5}
        assert mock_request.call_args.kwargs["authenticated"] is False


# =============================================================================
# Heartbeat and Reconnection
# =============================================================================


class TestReconnection:
    """Tests for heartbeat-driven reconnection."""

    @pytest.mark.asyncio
    async def test_healthy_heartbeat(self, connected_client):
        assert await connected_client.heartbeat_once() is True
        assert connected_client.reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_heartbeat_when_disconnected(self, client):
        assert await client.heartbeat_once() is False

    @pytest.mark.asyncio
    async def test_reconnects_after_failures(self, flaky_transport, client_settings, event_bus):
        flaky = flaky_transport(2)
        client = SessionClient(flaky, settings=client_settings, event_bus=event_bus)
        lost = record(event_bus, ConnectionLost)
        restored = record(event_bus, ConnectionRestored)
        assert await client.connect() is True

        assert await client.heartbeat_once() is True

        assert client.connected is True
        assert client.reconnecting is False
        assert client.reconnect_attempts == 0
        assert flaky.heartbeat_calls == 3
        assert flaky.connect_calls == 3
        assert len(lost) == 1
        assert restored[0].attempts == 2
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_reconnect_keeps_current_session(self, flaky_transport, client_settings):
        flaky = flaky_transport(1)
        client = SessionClient(flaky, settings=client_settings)
        await client.connect()
        session = await client.create_session("Sticky")
        old_id = client.client_id

        assert await client.heartbeat_once() is True

        assert client.client_id != old_id
        current = await client.get_current_session()
        assert current is not None and current.id == session.id
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_exhaustion_is_sticky(self, flaky_transport, client_settings, event_bus):
        flaky = flaky_transport(None)
        client = SessionClient(flaky, settings=client_settings, event_bus=event_bus)
        exhausted = record(event_bus, ReconnectExhausted)
        await client.connect()

        assert await client.heartbeat_once() is False

        assert client.connected is False
        assert client.reconnecting is False
        assert isinstance(client.exhausted, ExhaustedReconnectError)
        assert "Max reconnection attempts reached (3)" in client.exhausted.message
        assert client.connection_status().exhausted is True
        assert flaky.heartbeat_calls == 4
        assert exhausted[0].attempts == 3

        # No further retries on their own
        assert await client.heartbeat_once() is False
        assert flaky.heartbeat_calls == 4

        # An explicit connect starts over
        assert await client.connect() is True
        assert client.exhausted is None
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_backoff_is_linear(self, flaky_transport):
        settings = ClientSettings(
            heartbeat_interval_s=3600.0, max_reconnect_attempts=3, reconnect_base_delay_s=2.0
        )
        flaky = flaky_transport(None)
        client = SessionClient(flaky, settings=settings)
        await client.connect()

        with patch(
            "amps_companion.application.services.session_client.asyncio.sleep",
            new=AsyncMock(),
        ) as mock_sleep:
            await client.heartbeat_once()

        assert [c.args[0] for c in mock_sleep.call_args_list] == [2.0, 4.0, 6.0]
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_protocol_error_does_not_reconnect(self, connected_client):
        with patch.object(
            connected_client.transport,
            "request",
            new=AsyncMock(side_effect=ProtocolError("Unauthorized", status=401)),
        ):
            assert await connected_client.heartbeat_once() is False

        assert connected_client.connected is True
        assert connected_client.reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_heartbeat_skipped_while_in_flight(self, connected_client):
        async with connected_client._heartbeat_lock:
            assert await connected_client.heartbeat_once() is False

        assert connected_client.connected is True

    @pytest.mark.asyncio
    async def test_background_heartbeat_runs(self, flaky_transport):
        settings = ClientSettings(heartbeat_interval_s=0.01, reconnect_base_delay_s=0.0)
        flaky = flaky_transport(0)
        client = SessionClient(flaky, settings=settings)
        await client.connect()

        await asyncio.sleep(0.1)
        await client.disconnect()

        assert flaky.heartbeat_calls >= 2
        calls = flaky.heartbeat_calls
        await asyncio.sleep(0.05)
        assert flaky.heartbeat_calls == calls

    @pytest.mark.asyncio
    async def test_background_heartbeat_reconnects(self, flaky_transport, event_bus):
        settings = ClientSettings(
            heartbeat_interval_s=0.01, max_reconnect_attempts=3, reconnect_base_delay_s=0.0
        )
        flaky = flaky_transport(1)
        client = SessionClient(flaky, settings=settings, event_bus=event_bus)
        restored = record(event_bus, ConnectionRestored)
        await client.connect()

        for _ in range(100):
            if flaky.heartbeat_calls >= 4:
                break
            await asyncio.sleep(0.01)

        assert client.connected is True
        assert restored[0].attempts == 1
        assert flaky.connect_calls == 2
        assert flaky.heartbeat_calls >= 4
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_heartbeat_resumes_after_manual_reconnect(self, flaky_transport):
        # The backoff outlasts the interval, so the loop sees a dropped connection and exits.
        settings = ClientSettings(
            heartbeat_interval_s=0.02, max_reconnect_attempts=3, reconnect_base_delay_s=0.1
        )
        flaky = flaky_transport(1)
        client = SessionClient(flaky, settings=settings)
        await client.connect()

        assert await client.heartbeat_once() is True
        calls = flaky.heartbeat_calls
        await asyncio.sleep(0.2)

        assert client.connected is True
        assert flaky.heartbeat_calls > calls
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnection(self, flaky_transport, event_bus):
        settings = ClientSettings(
            heartbeat_interval_s=3600.0, max_reconnect_attempts=3, reconnect_base_delay_s=0.05
        )
        flaky = flaky_transport(1)
        client = SessionClient(flaky, settings=settings, event_bus=event_bus)
        restored = record(event_bus, ConnectionRestored)
        exhausted = record(event_bus, ReconnectExhausted)
        await client.connect()

        heartbeat = asyncio.create_task(client.heartbeat_once())
        await asyncio.sleep(0.01)
        assert client.reconnecting is True

        await client.disconnect()

        assert await heartbeat is False
        await asyncio.sleep(0.1)
        assert client.connected is False
        assert client.client_id is None
        assert client.exhausted is None
        assert flaky.connect_calls == 1
        assert restored == []
        assert exhausted == []
