"""WebSocket endpoint — live table updates for browser clients.

Learn: Each client connects to /ws. The handler:
1. Registers a session and tells the client its connectionId
2. Drains the session's outbox to the socket (pushes from the notifier)
3. Reads client commands: subscribe, ping
4. Unregisters the session when either side goes away

The registry entry is always removed on the way out, so the notifier
never scans a dead connection.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from pinewood.errors import SessionNotFound
from pinewood.realtime.registry import ClientSession, SessionRegistry
from pinewood.schemas.realtime import SubscribeRequest

logger = structlog.get_logger()
router = APIRouter()


async def _handle_command(
    websocket: WebSocket, registry: SessionRegistry, session: ClientSession, raw: str
) -> None:
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError:
        return
    if not isinstance(msg, dict):
        return

    kind = msg.get("type")
    if kind == "ping":
        await websocket.send_json({"event": "pong"})
    elif kind == "subscribe":
        try:
            body = SubscribeRequest(
                connection_id=session.connection_id, tables=msg.get("tables") or []
            )
            tables = registry.subscribe(session.connection_id, body.tables)
        except (ValidationError, SessionNotFound) as e:
            await websocket.send_json({"event": "error", "data": {"error": str(e)}})
            return
        await websocket.send_json(
            {"event": "subscribed", "data": {"tables": sorted(tables)}}
        )


@router.websocket("/ws")
async def updates_websocket(websocket: WebSocket):
    """Real-time push channel.

    Learn: Two concurrent tasks run:
    1. Outbox writer — session queue → WebSocket
    2. Client listener — WebSocket → commands

    When either side finishes, the other is cancelled.
    """
    registry: SessionRegistry = websocket.app.state.registry

    await websocket.accept()
    session = registry.register()
    logger.info("realtime.connected", connection_id=session.connection_id)

    async def outbox_writer():
        """Forward queued pushes to the WebSocket client."""
        try:
            while True:
                message = await session.outbox.get()
                await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, asyncio.CancelledError):
            pass

    async def client_listener():
        """Handle incoming WebSocket commands."""
        try:
            while True:
                data = await websocket.receive_text()
                await _handle_command(websocket, registry, session, data)
        except (WebSocketDisconnect, asyncio.CancelledError):
            pass

    try:
        try:
            await websocket.send_json(
                {"event": "connected", "data": {"connectionId": session.connection_id}}
            )
        except (WebSocketDisconnect, RuntimeError):
            # Client left before the handshake
            return

        writer_task = asyncio.create_task(outbox_writer())
        client_task = asyncio.create_task(client_listener())

        # Wait for either to finish (usually client disconnect)
        done, pending = await asyncio.wait(
            [writer_task, client_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        registry.unregister(session.connection_id)
        logger.info("realtime.disconnected", connection_id=session.connection_id)
        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except RuntimeError as e:
                logger.debug("realtime.close_failed", error=str(e))
