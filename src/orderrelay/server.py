"""aiohttp application exposing the relay over HTTP and WebSocket."""

from __future__ import annotations

import json
import logging
import weakref
from typing import Any

from aiohttp import WSCloseCode, WSMsgType, web

from orderrelay._api._json import dumps
from orderrelay._api.sync import INVALID_BODY_MESSAGE, build_sync_response
from orderrelay.config import RelayConfig
from orderrelay.exceptions import RelayValidationError
from orderrelay.models import ErrorResponse, HeartbeatResponse
from orderrelay.relay import OrderRelay

_logger = logging.getLogger(__name__)

RELAY_KEY = web.AppKey("relay", OrderRelay)
WEBSOCKETS_KEY = web.AppKey("websockets", weakref.WeakSet)

_GROUP_BY_DEVICE = "device"


def _json_response(data: Any, *, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=dumps)


def _error_response(message: str, status: int = 400) -> web.Response:
    return _json_response(ErrorResponse(error=message).to_wire(), status=status)


def _new_websocket(app: web.Application) -> web.WebSocketResponse:
    heartbeat = app[RELAY_KEY].config.ws_heartbeat
    return web.WebSocketResponse(heartbeat=heartbeat or None)


# ----------------------------------------------------------------------
# HTTP handlers
# ----------------------------------------------------------------------


async def sync_orders_handler(request: web.Request) -> web.Response:
    """``POST /api/sync-orders-bulk``."""
    relay = request.app[RELAY_KEY]
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error_response(INVALID_BODY_MESSAGE)

    try:
        view = await relay.sync_orders(body)
    except RelayValidationError as exc:
        return _error_response(str(exc), exc.status_code)
    return _json_response(build_sync_response(view))


async def orders_handler(request: web.Request) -> web.Response:
    """``GET /api/orders/{merchantId}``.

    Returns the flat merged view.  ``?groupBy=device`` returns the per-device
    batches instead.
    """
    relay = request.app[RELAY_KEY]
    merchant_id = request.match_info["merchantId"]
    group_by = request.query.get("groupBy")
    if group_by is None:
        return _json_response(relay.orders_for(merchant_id))
    if group_by == _GROUP_BY_DEVICE:
        return _json_response(relay.orders_by_device(merchant_id))
    return _error_response(f"unsupported groupBy: {group_by}")


async def root_handler(request: web.Request) -> web.StreamResponse:
    """Liveness check; also accepts WebSocket upgrades on the server root."""
    ws = _new_websocket(request.app)
    if ws.can_prepare(request).ok:
        return await _serve_websocket(request, ws)
    return _json_response(HeartbeatResponse().to_wire())


async def websocket_handler(request: web.Request) -> web.StreamResponse:
    return await _serve_websocket(request, _new_websocket(request.app))


# ----------------------------------------------------------------------
# Push channel
# ----------------------------------------------------------------------


async def _serve_websocket(request: web.Request, ws: web.WebSocketResponse) -> web.WebSocketResponse:
    app = request.app
    relay = app[RELAY_KEY]
    await ws.prepare(request)
    app[WEBSOCKETS_KEY].add(ws)
    _logger.info("Push connection opened from %s", request.remote)

    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                await relay.handle_message(ws, msg.data)
            elif msg.type == WSMsgType.ERROR:
                _logger.warning("Push connection error: %s", ws.exception())
    finally:
        relay.disconnect(ws)
        app[WEBSOCKETS_KEY].discard(ws)
        _logger.info("Push connection closed (code=%s)", ws.close_code)

    return ws


# ----------------------------------------------------------------------
# Application lifecycle
# ----------------------------------------------------------------------


async def _start_relay(app: web.Application) -> None:
    await app[RELAY_KEY].start()


async def _close_websockets(app: web.Application) -> None:
    for ws in set(app[WEBSOCKETS_KEY]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")


async def _stop_relay(app: web.Application) -> None:
    await app[RELAY_KEY].stop()


def create_app(relay: OrderRelay | None = None, *, config: RelayConfig | None = None) -> web.Application:
    """Build the aiohttp application.

    The relay's eviction loop starts with the application and stops on
    cleanup; open push connections are closed on shutdown.
    """
    app = web.Application()
    app[RELAY_KEY] = relay if relay is not None else OrderRelay(config)
    app[WEBSOCKETS_KEY] = weakref.WeakSet()

    app.router.add_get("/", root_handler)
    app.router.add_get("/ws", websocket_handler)
    app.router.add_post("/api/sync-orders-bulk", sync_orders_handler)
    app.router.add_get("/api/orders/{merchantId}", orders_handler)

    app.on_startup.append(_start_relay)
    app.on_shutdown.append(_close_websockets)
    app.on_cleanup.append(_stop_relay)
    return app


def run_server(config: RelayConfig) -> None:
    """Serve until interrupted."""
    app = create_app(config=config)
    _logger.info("Server is running on http://%s:%s", config.host, config.port)
    web.run_app(app, host=config.host, port=config.port, print=None)
