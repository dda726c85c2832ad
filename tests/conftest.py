from collections.abc import Mapping
from typing import Any

import pytest
import pytest_asyncio

from amps_companion.application.interfaces.transport import ControllerTransport
from amps_companion.domain.shared.constants import ApiPaths
from amps_companion.domain.shared.exceptions import TransportError

API_KEY = "demo-key"

# ============================================================================
# Test Doubles
# ============================================================================


class FlakyHeartbeatTransport(ControllerTransport):
    """Delegates to ``inner`` but fails heartbeat calls.

    ``failures`` is how many heartbeats fail before they start succeeding;
    None means every heartbeat fails.
    """

    def __init__(self, inner: ControllerTransport, *, failures: int | None) -> None:
        super().__init__()
        self.inner = inner
        self.failures = failures
        self.heartbeat_calls = 0
        self.connect_calls = 0

    def set_client_id(self, client_id: str | None) -> None:
        super().set_client_id(client_id)
        self.inner.set_client_id(client_id)

    async def request(
        self,
        method: Any,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        if path == ApiPaths.CONNECT:
            self.connect_calls += 1
        if path == ApiPaths.HEARTBEAT:
            self.heartbeat_calls += 1
            if self.failures is None or self.heartbeat_calls <= self.failures:
                raise TransportError("heartbeat unreachable")
        return await self.inner.request(
            method, path, json=json, params=params, authenticated=authenticated
        )

    async def aclose(self) -> None:
        await self.inner.aclose()


# ============================================================================
# Simulator Fixtures
# ============================================================================


@pytest.fixture
def event_bus():
    from amps_companion.domain.shared.events import EventBus

    return EventBus()


@pytest_asyncio.fixture
async def simulator(event_bus):
    """A simulator with background progression disabled; tests call tick()."""
    from amps_companion.infrastructure.simulator.controller import ControllerSimulator

    sim = ControllerSimulator(event_bus=event_bus, auto_progress=False)
    yield sim
    await sim.aclose()


@pytest.fixture
def ctx():
    from amps_companion.infrastructure.simulator.controller import RequestContext

    return RequestContext(credential=API_KEY)


@pytest.fixture
def router(simulator):
    from amps_companion.infrastructure.simulator.routes import SimulatorRouter

    return SimulatorRouter(simulator)


@pytest.fixture
def transport(router):
    from amps_companion.infrastructure.transport.inprocess import InProcessTransport

    return InProcessTransport(router, api_key=API_KEY)


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def client_settings():
    """Client settings that never fire the heartbeat on their own and retry instantly."""
    from amps_companion.config.settings import ClientSettings

    return ClientSettings(
        heartbeat_interval_s=3600.0,
        max_reconnect_attempts=3,
        reconnect_base_delay_s=0.0,
    )


@pytest_asyncio.fixture
async def client(transport, client_settings, event_bus):
    from amps_companion.application.services.session_client import SessionClient

    session_client = SessionClient(transport, settings=client_settings, event_bus=event_bus)
    yield session_client
    await session_client.disconnect()


@pytest_asyncio.fixture
async def connected_client(client):
    assert await client.connect() is True
    return client


@pytest.fixture
def store_settings():
    from amps_companion.config.settings import StoreSettings

    return StoreSettings(refresh_interval_s=3600.0)


@pytest_asyncio.fixture
async def store(client, store_settings, event_bus):
    from amps_companion.application.services.session_store import SessionStore

    session_store = SessionStore(client, settings=store_settings, event_bus=event_bus)
    yield session_store
    await session_store.aclose()


@pytest.fixture
def flaky_transport(transport):
    """Factory wrapping the simulator transport so heartbeats fail ``failures`` times."""

    def factory(failures: int | None) -> FlakyHeartbeatTransport:
        return FlakyHeartbeatTransport(transport, failures=failures)

    return factory
