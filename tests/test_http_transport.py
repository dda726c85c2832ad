"""
Tests for the httpx-based controller transport

Tests for:
- Envelope unwrapping
- Request shaping: base URL, bearer credential, client id, user agent, query params
- Error translation: HTTP errors, timeouts, connection failures, malformed bodies
- A SessionClient driving the simulator over HTTP
"""

import json

import httpx
import pytest

from amps_companion.application.services.session_client import SessionClient
from amps_companion.domain.shared.exceptions import (
    DomainError,
    ProtocolError,
    TransportError,
    status_for_error,
)
from amps_companion.infrastructure.simulator.controller import RequestContext
from amps_companion.infrastructure.transport.http_transport import (
    HttpControllerTransport,
    unwrap_envelope,
)

BASE_URL = "http://amps.test/api"


def make_transport(handler, **kwargs) -> HttpControllerTransport:
    return HttpControllerTransport(
        BASE_URL,
        api_key=kwargs.pop("api_key", "demo-key"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


# =============================================================================
# Envelope
# =============================================================================


class TestUnwrapEnvelope:
    """Tests for unwrap_envelope."""

    def test_data_payload_returned(self):
        assert unwrap_envelope({"success": True, "data": [1, 2]}) == [1, 2]

    def test_success_flag_copied_into_object(self):
        body = {"success": True, "data": {"clientId": "c1"}}
        assert unwrap_envelope(body) == {"clientId": "c1", "success": True}

    def test_own_success_flag_wins(self):
        body = {"success": True, "data": {"success": False}}
        assert unwrap_envelope(body) == {"success": False}

    def test_bare_body_passes_through(self):
        assert unwrap_envelope({"success": True}) == {"success": True}
        assert unwrap_envelope([1]) == [1]

    def test_null_data(self):
        assert unwrap_envelope({"success": True, "data": None}) is None


# =============================================================================
# Request shaping
# =============================================================================


class TestRequestShaping:
    """Tests for headers, paths and parameters."""

    @pytest.mark.asyncio
    async def test_authenticated_request_headers(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"clientId": "c1"}})

        transport = make_transport(handler)
        transport.set_client_id("client-abc")

        result = await transport.request("POST", "/connect", json={"clientType": "companion"})

        request = seen[0]
        assert request.url.path == "/api/connect"
        assert request.headers["Authorization"] == "Bearer demo-key"
        assert request.headers["X-Client-Id"] == "client-abc"
        assert request.headers["User-Agent"] == "AMPS-Companion/1.0.0"
        assert json.loads(request.content) == {"clientType": "companion"}
        assert result == {"clientId": "c1", "success": True}
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_unauthenticated_request_omits_bearer(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": []})

        transport = make_transport(handler)

        result = await transport.request(
            "GET", "/content/search", params={"q": "rock", "limit": 5}, authenticated=False
        )

        request = seen[0]
        assert "Authorization" not in request.headers
        assert "X-Client-Id" not in request.headers
        assert request.url.params["q"] == "rock"
        assert request.url.params["limit"] == "5"
        assert result == []
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_custom_version_in_user_agent(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        transport = make_transport(handler, version="2.3.4")

        assert await transport.request("POST", "/heartbeat") is None
        assert seen[0].headers["User-Agent"] == "AMPS-Companion/2.3.4"
        await transport.aclose()


# =============================================================================
# Error translation
# =============================================================================


class TestErrorTranslation:
    """Tests for failures becoming TransportError or ProtocolError."""

    @pytest.mark.asyncio
    async def test_error_body_text_surfaced(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"success": False, "error": "Session not found"})

        transport = make_transport(handler)

        with pytest.raises(ProtocolError) as exc_info:
            await transport.request("POST", "/sessions/x/join")

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Session not found"
        assert exc_info.value.is_not_found
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_error_without_body_uses_status_line(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        transport = make_transport(handler)

        with pytest.raises(ProtocolError, match="AMPS API error: 500 Internal Server Error"):
            await transport.request("GET", "/status")
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError, match="AMPS API request timeout"):
            await transport.request("GET", "/status")
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            await transport.request("GET", "/status")

        assert exc_info.value.message.startswith("Failed to connect to AMPS system")
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>nope</html>")

        transport = make_transport(handler)

        with pytest.raises(ProtocolError) as exc_info:
            await transport.request("GET", "/status")

        assert exc_info.value.code == "MALFORMED_RESPONSE"
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self):
        transport = make_transport(lambda request: httpx.Response(204))

        await transport.aclose()

        assert transport._client.is_closed


# =============================================================================
# End to end over HTTP
# =============================================================================


def simulator_handler(router):
    """An httpx handler that serves ``router`` the way a controller would over HTTP."""

    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode().split("?")[0].removeprefix("/api")
        auth = request.headers.get("Authorization", "")
        ctx = RequestContext(
            credential=auth.removeprefix("Bearer ") or None,
            client_id=request.headers.get("X-Client-Id"),
        )
        body = json.loads(request.content) if request.content else None
        try:
            data = await router.dispatch(
                request.method, path, ctx=ctx, json=body, params=dict(request.url.params)
            )
        except DomainError as e:
            return httpx.Response(
                status_for_error(e), json={"success": False, "error": e.message}
            )
        return httpx.Response(200, json={"success": True, "data": data})

    return handler


class TestSessionClientOverHttp:
    """The session client against the simulator behind an HTTP boundary."""

    @pytest.mark.asyncio
    async def test_session_flow(self, router, client_settings):
        transport = make_transport(simulator_handler(router))
        client = SessionClient(transport, settings=client_settings)

        assert await client.connect() is True
        session = await client.create_session("Over HTTP", {"volume": 70})
        item = await client.add_to_queue("content-3", priority=1)
        await client.control_playback("play")

        current = await client.get_current_session()
        assert current.id == session.id
        assert current.settings.volume == 70
        assert current.current_track.id == item.id

        with pytest.raises(ProtocolError) as exc_info:
            await client.join_session("a/b")
        assert exc_info.value.status == 404

        results = await client.search_content("Electronic", 1)
        assert results[0].metadata.genre == "Electronic"

        await client.leave_session()
        assert await client.get_current_session() is None

        await client.aclose()
        assert transport._client.is_closed
