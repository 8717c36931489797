"""
aiohttp application accepting downstream WebSocket clients.

Every client gets one :class:`~disclink.hub.connection.Connection`. The handler
only posts events (connect, each text frame, close) to the controller; frames
are answered from the dispatch loop, in arrival order.
"""

from __future__ import annotations

import logging

from aiohttp import WSMsgType, web

from disclink.controller import BridgeController
from disclink.events import ClientClosed, ClientConnected, ClientFrame

from .connection import Connection

logger = logging.getLogger(__name__)

CONTROLLER_KEY = web.AppKey("controller", BridgeController)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    controller = request.app[CONTROLLER_KEY]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    connection = Connection(ws, remote=request.remote)
    controller.post(ClientConnected(connection))
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                controller.post(ClientFrame(connection, msg.data))
            elif msg.type == WSMsgType.BINARY:
                controller.post(ClientFrame(connection, msg.data.decode("utf-8", errors="replace")))
            elif msg.type == WSMsgType.ERROR:
                logger.warning("Socket error from %s: %s", request.remote, ws.exception())
    finally:
        controller.post(ClientClosed(connection))
    return ws


def create_app(controller: BridgeController) -> web.Application:
    app = web.Application()
    app[CONTROLLER_KEY] = controller
    app.router.add_get("/", websocket_handler)
    return app


async def start(controller: BridgeController, host: str, port: int) -> web.AppRunner:
    """Serve the WebSocket endpoint; the caller owns ``runner.cleanup()``."""

    runner = web.AppRunner(create_app(controller))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("WebSocket listening on %s:%s", host, port)
    return runner
