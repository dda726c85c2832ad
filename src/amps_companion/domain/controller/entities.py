"""Controller-wide shapes: system status, the connect handshake, client connection status."""

from __future__ import annotations

from pydantic import BaseModel, Field

from amps_companion.domain.shared.constants import ClientDefaults
from amps_companion.domain.shared.datetime_utils import utcnow
from amps_companion.domain.shared.enums import LinkStatus, StorageStatus
from amps_companion.domain.shared.models import WireModel
from amps_companion.domain.shared.types import NonNegativeInt, UtcDatetimeField


class HardwareStatus(WireModel):
    audio: LinkStatus = LinkStatus.CONNECTED
    network: LinkStatus = LinkStatus.CONNECTED
    storage: StorageStatus = StorageStatus.AVAILABLE

    @property
    def healthy(self) -> bool:
        return (
            self.audio == LinkStatus.CONNECTED
            and self.network == LinkStatus.CONNECTED
            and self.storage == StorageStatus.AVAILABLE
        )


class SessionCounts(WireModel):
    active: NonNegativeInt = 0
    total: NonNegativeInt = 0


class SystemStatus(WireModel):
    """Process-wide controller status; always replaced as a whole."""

    connected: bool = False
    version: str
    hardware: HardwareStatus = Field(default_factory=HardwareStatus)
    sessions: SessionCounts = Field(default_factory=SessionCounts)
    last_heartbeat: UtcDatetimeField = Field(default_factory=utcnow)


class ConnectRequest(WireModel):
    client_type: str = ClientDefaults.CLIENT_TYPE
    version: str = ClientDefaults.VERSION
    capabilities: list[str] = Field(default_factory=lambda: list(ClientDefaults.CAPABILITIES))


class ConnectResponse(WireModel):
    success: bool
    client_id: str | None = None
    capabilities: list[str] = Field(default_factory=list)
    error: str | None = None


class ConnectionStatus(BaseModel):
    """Client-local view of the connection, never transmitted."""

    connected: bool
    reconnecting: bool = False
    reconnect_attempts: NonNegativeInt = 0
    max_reconnect_attempts: NonNegativeInt
    exhausted: bool = False
    client_id: str | None = None
