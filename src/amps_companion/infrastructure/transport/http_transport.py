"""HTTP transport to a remote controller, built on httpx."""

from __future__ import annotations

import json as jsonlib
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from amps_companion.application.interfaces.transport import ControllerTransport
from amps_companion.domain.shared.constants import ClientDefaults, HTTPHeaders
from amps_companion.domain.shared.enums import HttpMethod
from amps_companion.domain.shared.exceptions import ProtocolError, TransportError
from amps_companion.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except (jsonlib.JSONDecodeError, UnicodeDecodeError):
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return ErrorMessages.HTTP_ERROR.format(status=response.status_code, reason=response.reason_phrase)


def unwrap_envelope(body: Any) -> Any:
    """Return the payload of a ``{success, data, error}`` envelope.

    Bodies without a ``data`` key are returned unchanged. When ``data`` is an
    object without its own ``success`` flag, the envelope's flag is copied in.
    """
    if not isinstance(body, dict) or "data" not in body:
        return body
    data = body["data"]
    if isinstance(data, dict) and "success" in body and "success" not in data:
        data = {**data, "success": body["success"]}
    return data


class HttpControllerTransport(ControllerTransport):
    def __init__(
        self,
        base_url: str = ClientDefaults.BASE_URL,
        *,
        api_key: str | None = None,
        timeout: float = ClientDefaults.REQUEST_TIMEOUT_SECONDS,
        version: str = ClientDefaults.VERSION,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={HTTPHeaders.USER_AGENT: HTTPHeaders.USER_AGENT_VALUE.format(version=version)},
            transport=transport,
        )

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if authenticated and self._api_key:
            headers[HTTPHeaders.AUTHORIZATION] = HTTPHeaders.BEARER.format(token=self._api_key)
        if self._client_id:
            headers[HTTPHeaders.CLIENT_ID] = self._client_id
        return headers

    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        logger.debug(LogTemplates.HTTP_REQUEST, method, path)
        try:
            response = await self._client.request(
                str(method),
                path.lstrip("/"),
                json=dict(json) if json is not None else None,
                params=dict(params) if params is not None else None,
                headers=self._headers(authenticated),
            )
        except httpx.TimeoutException as e:
            raise TransportError(ErrorMessages.REQUEST_TIMEOUT, cause=e) from e
        except httpx.TransportError as e:
            raise TransportError(f"{ErrorMessages.CONNECTION_FAILED}: {e}", cause=e) from e

        if response.is_error:
            raise ProtocolError(_error_text(response), status=response.status_code)

        if not response.content:
            return None
        try:
            body = response.json()
        except (jsonlib.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(
                ErrorMessages.MALFORMED_RESPONSE,
                status=response.status_code,
                code="MALFORMED_RESPONSE",
            ) from e
        return unwrap_envelope(body)

    async def aclose(self) -> None:
        await self._client.aclose()
        logger.debug(LogTemplates.HTTP_CLIENT_CLOSED)
