"""HTTP-shaped routing onto the controller simulator.

Requests are dispatched by method and path exactly as a real controller would
see them, so the in-process transport exercises the same surface as HTTP.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

import pydantic

from amps_companion.domain.controller.entities import ConnectRequest
from amps_companion.domain.shared.constants import ClientDefaults
from amps_companion.domain.shared.enums import HttpMethod
from amps_companion.domain.shared.exceptions import EntityNotFoundError, ValidationError
from amps_companion.domain.shared.messages import ErrorMessages, LogTemplates
from amps_companion.domain.shared.models import WireModel
from amps_companion.infrastructure.simulator.controller import ControllerSimulator, RequestContext

logger = logging.getLogger(__name__)

Body = Mapping[str, Any]
Handler = Callable[["RouteRequest"], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class RouteRequest:
    ctx: RequestContext
    body: Body
    path_params: Mapping[str, str]
    params: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Route:
    method: HttpMethod
    pattern: re.Pattern[str]
    handler: Handler


def _number(body: Body, name: str) -> float:
    value = body.get(name)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number", field=name)
    return float(value)


def _to_wire(result: Any) -> Any:
    if isinstance(result, WireModel):
        return result.to_wire()
    if isinstance(result, list):
        return [_to_wire(item) for item in result]
    return result


class SimulatorRouter:
    """Maps ``(method, path)`` onto ``ControllerSimulator`` calls.

    Handlers raise ``DomainError`` subclasses; translating those into status
    codes is the transport's job.
    """

    def __init__(self, controller: ControllerSimulator) -> None:
        self._controller = controller
        self._routes: list[Route] = []

        self._add(HttpMethod.POST, r"/connect", self._connect)
        self._add(HttpMethod.POST, r"/disconnect", self._disconnect)
        self._add(HttpMethod.GET, r"/status", self._status)
        self._add(HttpMethod.POST, r"/heartbeat", self._heartbeat)

        self._add(HttpMethod.GET, r"/sessions", self._list_sessions)
        self._add(HttpMethod.POST, r"/sessions", self._create_session)
        self._add(HttpMethod.GET, r"/sessions/current", self._current_session)
        self._add(HttpMethod.POST, r"/sessions/leave", self._leave_session)
        self._add(HttpMethod.POST, r"/sessions/control", self._control)
        self._add(HttpMethod.POST, r"/sessions/seek", self._seek)
        self._add(HttpMethod.POST, r"/sessions/volume", self._volume)

        self._add(HttpMethod.GET, r"/sessions/queue", self._get_queue)
        self._add(HttpMethod.POST, r"/sessions/queue", self._add_to_queue)
        self._add(HttpMethod.POST, r"/sessions/queue/reorder", self._reorder_queue)
        self._add(HttpMethod.DELETE, r"/sessions/queue/(?P<item_id>[^/]+)", self._remove_from_queue)
        self._add(HttpMethod.POST, r"/sessions/(?P<session_id>[^/]+)/join", self._join_session)

        self._add(HttpMethod.GET, r"/content/search", self._search)
        self._add(HttpMethod.GET, r"/content/(?P<content_id>[^/]+)", self._get_content)

    def _add(self, method: HttpMethod, path: str, handler: Handler) -> None:
        self._routes.append(Route(method, re.compile(f"^{path}$"), handler))

    @property
    def controller(self) -> ControllerSimulator:
        return self._controller

    async def dispatch(
        self,
        method: str,
        path: str,
        *,
        ctx: RequestContext,
        json: Body | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Run the matching handler and return its JSON-ready result."""
        logger.debug(LogTemplates.SIM_REQUEST, method, path)
        method = method.upper()
        path = path.rstrip("/") or "/"

        for route in self._routes:
            if route.method != method:
                continue
            match = route.pattern.match(path)
            if match is None:
                continue
            path_params = {name: unquote(value) for name, value in match.groupdict().items()}
            result = await route.handler(RouteRequest(ctx, json or {}, path_params, params or {}))
            return _to_wire(result)

        raise EntityNotFoundError(
            "Endpoint",
            path,
            message=ErrorMessages.UNKNOWN_ENDPOINT.format(method=method, path=path),
        )

    # ── Handlers ────────────────────────────────────────────────────

    async def _connect(self, request: RouteRequest) -> Any:
        try:
            connect_request = ConnectRequest.model_validate(request.body)
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e
        return await self._controller.connect(connect_request, request.ctx)

    async def _disconnect(self, request: RouteRequest) -> Any:
        return await self._controller.disconnect(request.ctx)

    async def _status(self, request: RouteRequest) -> Any:
        return await self._controller.status()

    async def _heartbeat(self, request: RouteRequest) -> Any:
        return await self._controller.heartbeat(request.ctx)

    async def _list_sessions(self, request: RouteRequest) -> Any:
        return await self._controller.list_sessions(request.ctx)

    async def _create_session(self, request: RouteRequest) -> Any:
        name = request.body.get("name")
        settings = request.body.get("settings")
        if name is not None and not isinstance(name, str):
            raise ValidationError("name must be a string", field="name")
        if settings is not None and not isinstance(settings, Mapping):
            raise ValidationError("settings must be an object", field="settings")
        return await self._controller.create_session(name, settings, request.ctx)

    async def _join_session(self, request: RouteRequest) -> Any:
        return await self._controller.join_session(request.path_params["session_id"], request.ctx)

    async def _leave_session(self, request: RouteRequest) -> Any:
        return await self._controller.leave_session(request.ctx)

    async def _current_session(self, request: RouteRequest) -> Any:
        return await self._controller.current_session(request.ctx)

    async def _control(self, request: RouteRequest) -> Any:
        action = request.body.get("action")
        if not isinstance(action, str):
            raise ValidationError(
                ErrorMessages.UNKNOWN_PLAYBACK_ACTION.format(action=action), field="action"
            )
        return await self._controller.control_playback(action, request.ctx)

    async def _seek(self, request: RouteRequest) -> Any:
        return await self._controller.seek(_number(request.body, "position"), request.ctx)

    async def _volume(self, request: RouteRequest) -> Any:
        return await self._controller.set_volume(_number(request.body, "volume"), request.ctx)

    async def _get_queue(self, request: RouteRequest) -> Any:
        return await self._controller.get_queue(request.ctx)

    async def _add_to_queue(self, request: RouteRequest) -> Any:
        content_id = request.body.get("contentId")
        if not isinstance(content_id, str):
            raise ValidationError(ErrorMessages.EMPTY_CONTENT_ID, field="contentId")
        priority = request.body.get("priority") or 0
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError("priority must be an integer", field="priority")
        return await self._controller.add_to_queue(content_id, priority, request.ctx)

    async def _remove_from_queue(self, request: RouteRequest) -> Any:
        return await self._controller.remove_from_queue(request.path_params["item_id"], request.ctx)

    async def _reorder_queue(self, request: RouteRequest) -> Any:
        item_ids = request.body.get("queueItemIds")
        if not isinstance(item_ids, list) or not all(isinstance(i, str) for i in item_ids):
            raise ValidationError(ErrorMessages.INVALID_REORDER_PAYLOAD, field="queueItemIds")
        return await self._controller.reorder_queue(item_ids, request.ctx)

    async def _search(self, request: RouteRequest) -> Any:
        query = str(request.params.get("q", ""))
        try:
            limit = int(request.params.get("limit", ClientDefaults.SEARCH_LIMIT))
        except (TypeError, ValueError):
            raise ValidationError("limit must be an integer", field="limit") from None
        return await self._controller.search_content(query, limit)

    async def _get_content(self, request: RouteRequest) -> Any:
        return await self._controller.get_content(request.path_params["content_id"])
