"""Transport that calls a ``ControllerSimulator`` in the same event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from amps_companion.application.interfaces.transport import ControllerTransport
from amps_companion.domain.shared.constants import ClientDefaults
from amps_companion.domain.shared.enums import HttpMethod
from amps_companion.domain.shared.exceptions import (
    DomainError,
    ProtocolError,
    TransportError,
    status_for_error,
)
from amps_companion.domain.shared.messages import ErrorMessages
from amps_companion.infrastructure.simulator.controller import RequestContext
from amps_companion.infrastructure.simulator.routes import SimulatorRouter


class InProcessTransport(ControllerTransport):
    """Routes requests through ``SimulatorRouter`` without any network I/O.

    Domain errors raised by the simulator come back as ``ProtocolError`` with
    the status a real controller would answer with.
    """

    def __init__(
        self,
        router: SimulatorRouter,
        *,
        api_key: str | None = ClientDefaults.API_KEY,
        timeout: float = ClientDefaults.REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__()
        self._router = router
        self._api_key = api_key
        self._timeout = timeout
        self._closed = False

    @property
    def router(self) -> SimulatorRouter:
        return self._router

    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        if self._closed:
            raise TransportError("Transport is closed")

        ctx = RequestContext(
            credential=self._api_key if authenticated else None,
            client_id=self._client_id,
        )
        try:
            async with asyncio.timeout(self._timeout):
                return await self._router.dispatch(
                    str(method), path, ctx=ctx, json=json, params=params
                )
        except TimeoutError as e:
            raise TransportError(ErrorMessages.REQUEST_TIMEOUT, cause=e) from e
        except DomainError as e:
            raise ProtocolError(e.message, status=status_for_error(e), code=e.code) from e

    async def aclose(self) -> None:
        self._closed = True
