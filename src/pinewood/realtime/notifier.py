"""Mutation notifier — fans change descriptors out to subscribed sessions.

Learn: notify() is synchronous. It only places messages on per-session
outbox queues, so the handler that triggered it never waits on a slow
client. A session gets one `update` push holding exactly the descriptors
whose table it subscribes to, in input order; sessions with no match get
nothing. A failing session is logged and skipped; the rest of the
fan-out always completes.
"""

from collections.abc import Sequence
from typing import Any, Optional, Union

import structlog
from starlette.requests import Request

from pinewood.realtime.registry import ClientSession, SessionRegistry
from pinewood.schemas.common import ChangeDescriptor, mutation_response

logger = structlog.get_logger()

UPDATE_EVENT = "update"
NEWDATA_EVENT = "newdata"

Descriptor = Union[ChangeDescriptor, dict[str, Any]]


def _as_payload(descriptor: Descriptor) -> dict[str, Any]:
    if isinstance(descriptor, ChangeDescriptor):
        return descriptor.to_payload()
    return descriptor


class MutationNotifier:
    """Delivers change descriptors to the sessions that asked for them."""

    def __init__(self, registry: SessionRegistry, relay=None):
        self.registry = registry
        # Set in lifespan when Redis is reachable (see realtime.pubsub)
        self.relay = relay

    def notify(self, descriptors: Sequence[Descriptor]) -> int:
        """Push descriptors to local subscribers and relay them to peers.

        Returns the number of local sessions that received a push.
        """
        payload = [_as_payload(d) for d in descriptors]
        if not payload:
            return 0
        delivered = self.deliver(payload)
        if self.relay is not None:
            self.relay.publish(UPDATE_EVENT, payload)
        return delivered

    def deliver(self, descriptors: list[dict[str, Any]]) -> int:
        """Local fan-out only. Used directly for messages relayed from peers."""
        delivered = 0
        for session in self.registry.all_sessions():
            matching = [d for d in descriptors if d.get("table") in session.tables]
            if matching and self._push(session, UPDATE_EVENT, matching):
                delivered += 1
        logger.debug(
            "realtime.notified",
            tables=[d.get("table") for d in descriptors],
            sessions=delivered,
        )
        return delivered

    def emit_all(self, event: str, data: Optional[Any] = None) -> int:
        """Send an event to every connection regardless of subscriptions."""
        delivered = self.deliver_all(event, data)
        if self.relay is not None:
            self.relay.publish(event, data)
        return delivered

    def deliver_all(self, event: str, data: Optional[Any] = None) -> int:
        delivered = 0
        for session in self.registry.all_sessions():
            if self._push(session, event, data):
                delivered += 1
        return delivered

    def _push(self, session: ClientSession, event: str, data: Any) -> bool:
        try:
            session.send(event, data)
        except Exception as e:
            logger.warning(
                "realtime.delivery_failed",
                connection_id=session.connection_id,
                event=event,
                error=type(e).__name__,
            )
            return False
        return True


def get_notifier(request: Request) -> MutationNotifier:
    """FastAPI dependency — the notifier built by create_app()."""
    return request.app.state.notifier


def publish_mutation(
    notifier: MutationNotifier, *descriptors: ChangeDescriptor
) -> dict[str, Any]:
    """Push a write's descriptors and build the matching HTTP response."""
    notifier.notify(descriptors)
    return mutation_response(descriptors)
