"""WebSocket tests — connect, subscribe, receive pushes, disconnect.

Learn: Starlette's TestClient runs the app on its own event loop in a
background thread. Pushes are triggered through client.portal so the
notifier runs on that same loop, exactly as a request handler would.
"""

from types import SimpleNamespace

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketState

from pinewood.main import app
from pinewood.realtime.websocket import updates_websocket

CAR_ROW = {"table": "car", "data": [{"carId": 3, "imageVersion": 2}]}
EVENT_ROW = {"table": "event", "data": [{"eventId": 1}]}


def test_connect_announces_connection_id(registry):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            hello = ws.receive_json()
            assert hello["event"] == "connected"
            assert hello["data"]["connectionId"] in registry
        assert len(registry) == 0


def test_subscribe_and_ping_commands(registry):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "subscribe", "tables": ["car"]})
            assert ws.receive_json() == {"event": "subscribed", "data": {"tables": ["car"]}}
            ws.send_json({"type": "subscribe", "tables": ["event"]})
            assert ws.receive_json()["data"]["tables"] == ["car", "event"]
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"event": "pong"}


def test_bad_subscribe_reports_error(registry):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "subscribe", "tables": ["votes"]})
            assert ws.receive_json()["event"] == "error"


def test_push_reaches_subscribed_socket(registry):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            connection_id = ws.receive_json()["data"]["connectionId"]
            r = client.post(
                "/api/v4/subscribe", json={"connectionId": connection_id, "tables": ["car"]}
            )
            assert r.json()["tables"] == ["car"]

            client.portal.call(app.state.notifier.notify, [EVENT_ROW, CAR_ROW])
            assert ws.receive_json() == {"event": "update", "data": [CAR_ROW]}


def test_newdata_reaches_every_socket(registry):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            client.portal.call(app.state.notifier.emit_all, "newdata")
            assert ws.receive_json() == {"event": "newdata"}


class _HangUpSocket:
    """Accepts, then fails on the first send like a client that left."""

    def __init__(self, registry):
        self.app = SimpleNamespace(state=SimpleNamespace(registry=registry))
        self.client_state = WebSocketState.DISCONNECTED

    async def accept(self):
        pass

    async def send_json(self, data):
        raise RuntimeError("Cannot call send once a close message has been sent.")


@pytest.mark.asyncio
async def test_disconnect_during_handshake_unregisters(registry):
    await updates_websocket(_HangUpSocket(registry))
    assert len(registry) == 0
