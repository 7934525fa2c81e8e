"""Session registry — live connections and their table subscriptions.

Learn: One SessionRegistry is built per process (in create_app) and
shared by the notifier, the subscribe endpoint and the WebSocket route.
Every method is synchronous and never awaits, so on a single event loop
no two calls can interleave; all_sessions() hands back a copy so a
broadcast scan is unaffected by connects/disconnects that happen while
pushes are being queued.
"""

import asyncio
import uuid
from collections.abc import Iterable
from typing import Any, Optional

from starlette.requests import Request

from pinewood.config import settings
from pinewood.errors import SessionNotFound


class SessionClosed(Exception):
    """Raised when pushing to a session that has already disconnected."""


class ClientSession:
    """One connected real-time client plus its subscription set.

    Pushes go onto a bounded outbox queue; the WebSocket writer task is the
    only consumer. A full outbox raises asyncio.QueueFull (the push is
    dropped, never retried).
    """

    def __init__(self, connection_id: str, queue_size: int):
        self.connection_id = connection_id
        self.tables: set[str] = set()
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def send(self, event: str, data: Any = None) -> None:
        if self.closed:
            raise SessionClosed(self.connection_id)
        message: dict[str, Any] = {"event": event}
        if data is not None:
            message["data"] = data
        self.outbox.put_nowait(message)

    def __repr__(self) -> str:
        return f"<ClientSession {self.connection_id} tables={sorted(self.tables)}>"


class SessionRegistry:
    """Process-wide registry of live sessions, keyed by connection id."""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.session_queue_size
        self._sessions: dict[str, ClientSession] = {}

    def register(self, connection_id: Optional[str] = None) -> ClientSession:
        """Create a session with an empty subscription set."""
        connection_id = connection_id or uuid.uuid4().hex
        if connection_id in self._sessions:
            raise ValueError(f"Connection {connection_id} is already registered")
        session = ClientSession(connection_id, self.queue_size)
        self._sessions[connection_id] = session
        return session

    def subscribe(self, connection_id: str, tables: Iterable[str]) -> set[str]:
        """Union `tables` into the session's set and return the full set."""
        session = self._sessions.get(connection_id)
        if session is None:
            raise SessionNotFound(connection_id)
        session.tables.update(tables)
        return set(session.tables)

    def unregister(self, connection_id: str) -> Optional[ClientSession]:
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            session.closed = True
        return session

    def get(self, connection_id: str) -> Optional[ClientSession]:
        return self._sessions.get(connection_id)

    def all_sessions(self) -> list[ClientSession]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions


def get_registry(request: Request) -> SessionRegistry:
    """FastAPI dependency — the registry built by create_app()."""
    return request.app.state.registry
