"""Dependency Injection Container

Wires settings into the transport, session client and state store. Components
are created on first access and cached for the lifetime of the container.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.enums import TransportMode

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..application.interfaces.transport import ControllerTransport
    from ..application.services.session_client import SessionClient
    from ..application.services.session_store import SessionStore
    from ..domain.shared.events import EventBus
    from ..infrastructure.simulator.controller import ControllerSimulator
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    The transport is chosen from ``settings.controller.mode``. In simulator
    mode the container also owns the ``ControllerSimulator`` behind it.
    """

    settings: Settings

    _event_bus: EventBus | None = None
    _simulator: ControllerSimulator | None = None
    _transport: ControllerTransport | None = None
    _session_client: SessionClient | None = None
    _session_store: SessionStore | None = None

    # === Events ===

    @property
    def event_bus(self) -> EventBus:
        """Get the event bus shared by the client, store and simulator."""
        if self._event_bus is None:
            from ..domain.shared.events import EventBus

            self._event_bus = EventBus()
        return self._event_bus

    # === Controller ===

    @property
    def simulator(self) -> ControllerSimulator:
        """Get the in-process controller simulator."""
        if self._simulator is None:
            from ..infrastructure.simulator.catalog import DemoCatalog
            from ..infrastructure.simulator.controller import ControllerSimulator

            sim = self.settings.simulator
            accepted = sim.accepted_api_key.get_secret_value() if sim.accepted_api_key else None
            self._simulator = ControllerSimulator(
                catalog=DemoCatalog(default_duration=sim.default_track_duration_s),
                event_bus=self.event_bus,
                version=sim.version,
                tick_seconds=sim.tick_seconds,
                accepted_api_key=accepted,
                auto_progress=sim.auto_progress,
            )
        return self._simulator

    @property
    def transport(self) -> ControllerTransport:
        """Get the transport selected by ``controller.mode``."""
        if self._transport is None:
            controller = self.settings.controller
            api_key = controller.api_key.get_secret_value() or None

            if controller.mode == TransportMode.HTTP:
                from ..infrastructure.transport.http_transport import HttpControllerTransport

                self._transport = HttpControllerTransport(
                    controller.base_url,
                    api_key=api_key,
                    timeout=controller.request_timeout_s,
                    version=self.settings.client.version,
                )
            else:
                from ..infrastructure.simulator.routes import SimulatorRouter
                from ..infrastructure.transport.inprocess import InProcessTransport

                self._transport = InProcessTransport(
                    SimulatorRouter(self.simulator),
                    api_key=api_key,
                    timeout=controller.request_timeout_s,
                )
        return self._transport

    # === Application services ===

    @property
    def session_client(self) -> SessionClient:
        """Get the session client."""
        if self._session_client is None:
            from ..application.services.session_client import SessionClient

            self._session_client = SessionClient(
                self.transport,
                settings=self.settings.client,
                event_bus=self.event_bus,
            )
        return self._session_client

    @property
    def session_store(self) -> SessionStore:
        """Get the client state store."""
        if self._session_store is None:
            from ..application.services.session_store import SessionStore

            self._session_store = SessionStore(
                self.session_client,
                settings=self.settings.store,
                event_bus=self.event_bus,
            )
        return self._session_store

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Stop background tasks and release the transport."""
        if self._session_store is not None:
            await self._session_store.aclose()
        if self._session_client is not None:
            try:
                await self._session_client.disconnect()
            except Exception as exc:
                logger.warning("Failed disconnecting session client: %r", exc)
        if self._transport is not None:
            await self._transport.aclose()
        if self._simulator is not None:
            await self._simulator.aclose()
        if self._event_bus is not None:
            self._event_bus.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
