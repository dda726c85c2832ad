"""Port interface for reaching a playback controller."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from amps_companion.domain.shared.enums import HttpMethod


class ControllerTransport(ABC):
    """Carries one request to a controller and returns the response data.

    Implementations unwrap the response envelope and translate every failure
    into ``TransportError`` (no answer) or ``ProtocolError`` (a rejection).
    """

    def __init__(self) -> None:
        self._client_id: str | None = None

    @property
    def client_id(self) -> str | None:
        return self._client_id

    def set_client_id(self, client_id: str | None) -> None:
        """Identify subsequent requests as coming from ``client_id``."""
        self._client_id = client_id

    @abstractmethod
    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and return the decoded ``data`` payload.

        Raises:
            TransportError: The controller could not be reached in time.
            ProtocolError: The controller answered with an error.
        """
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release any connection resources."""
        ...
