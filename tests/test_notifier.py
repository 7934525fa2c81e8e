"""MutationNotifier and UpdateRelay tests.

Learn: The notifier only enqueues, so these tests drive it directly and
inspect each session's outbox; no sockets are involved.
"""

import asyncio
import json

import pytest

from pinewood.realtime.notifier import MutationNotifier, publish_mutation
from pinewood.realtime.pubsub import UpdateRelay
from pinewood.realtime.registry import SessionRegistry
from pinewood.schemas.common import ChangeDescriptor

EVENT_ROW = {"table": "event", "data": [{"eventId": 7, "eventName": "Derby1"}]}
CAR_ROW = {"table": "car", "data": [{"carId": 3}]}
USER_GONE = {"table": "user", "data": {"ids": [4]}, "deleted": True}


def _session(registry, *tables):
    session = registry.register()
    registry.subscribe(session.connection_id, tables)
    return session


class FakeRelay:
    def __init__(self):
        self.published = []

    def publish(self, event, data=None):
        self.published.append((event, data))


# ═══════════════════════════════════════════════════════════
# Local fan-out
# ═══════════════════════════════════════════════════════════


def test_only_matching_tables_are_delivered(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    cars = _session(registry, "car")
    events = _session(registry, "event")
    everything = _session(registry, "car", "event", "user")
    nothing = registry.register()

    delivered = notifier.notify([EVENT_ROW, CAR_ROW, USER_GONE])

    assert delivered == 3
    assert drain(cars) == [{"event": "update", "data": [CAR_ROW]}]
    assert drain(events) == [{"event": "update", "data": [EVENT_ROW]}]
    # Input order is preserved
    assert drain(everything) == [
        {"event": "update", "data": [EVENT_ROW, CAR_ROW, USER_GONE]}
    ]
    assert drain(nothing) == []


def test_descriptor_models_are_serialized(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    session = _session(registry, "car")

    notifier.notify([ChangeDescriptor.removed("car", [9])])

    assert drain(session) == [
        {"event": "update", "data": [{"table": "car", "data": {"ids": [9]}, "deleted": True}]}
    ]


def test_empty_descriptor_list_sends_nothing(drain):
    registry = SessionRegistry(queue_size=10)
    relay = FakeRelay()
    notifier = MutationNotifier(registry, relay=relay)
    session = _session(registry, "car")

    assert notifier.notify([]) == 0
    assert drain(session) == []
    assert relay.published == []


def test_late_subscriber_gets_no_replay(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    notifier.notify([CAR_ROW])

    late = _session(registry, "car")
    assert drain(late) == []


def test_failing_session_does_not_stop_fanout(drain):
    registry = SessionRegistry(queue_size=1)
    notifier = MutationNotifier(registry)
    full = _session(registry, "car")
    full.send("update", [])  # queue is now full
    closed = _session(registry, "car")
    closed.closed = True
    healthy = _session(registry, "car")

    assert notifier.notify([CAR_ROW]) == 1
    assert drain(healthy) == [{"event": "update", "data": [CAR_ROW]}]
    # The full session kept its old message and dropped the new one
    assert drain(full) == [{"event": "update", "data": []}]


def test_emit_all_ignores_subscriptions(drain):
    registry = SessionRegistry(queue_size=10)
    relay = FakeRelay()
    notifier = MutationNotifier(registry, relay=relay)
    a = registry.register()
    b = _session(registry, "car")

    assert notifier.emit_all("newdata") == 2
    assert drain(a) == [{"event": "newdata"}]
    assert drain(b) == [{"event": "newdata"}]
    assert relay.published == [("newdata", None)]


def test_notify_relays_payload():
    registry = SessionRegistry(queue_size=10)
    relay = FakeRelay()
    notifier = MutationNotifier(registry, relay=relay)

    notifier.notify([ChangeDescriptor.removed("user", [4])])

    assert relay.published == [("update", [USER_GONE])]


def test_publish_mutation_builds_response(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    session = _session(registry, "event")
    descriptor = ChangeDescriptor(table="event", data=EVENT_ROW["data"])

    body = publish_mutation(notifier, descriptor)

    assert body == {"success": True, "update": [EVENT_ROW]}
    assert drain(session) == [{"event": "update", "data": [EVENT_ROW]}]


# ═══════════════════════════════════════════════════════════
# Cross-process relay
# ═══════════════════════════════════════════════════════════


def test_relay_delivers_peer_updates(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    relay = UpdateRelay(redis=None, channel="test")
    session = _session(registry, "car")

    raw = json.dumps({"origin": "peer", "event": "update", "data": [CAR_ROW, EVENT_ROW]})
    assert relay.handle_message(raw, notifier) == 1
    assert drain(session) == [{"event": "update", "data": [CAR_ROW]}]


def test_relay_skips_own_messages(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    relay = UpdateRelay(redis=None, channel="test")
    session = _session(registry, "car")

    raw = json.dumps({"origin": relay.origin, "event": "update", "data": [CAR_ROW]})
    assert relay.handle_message(raw, notifier) == 0
    assert drain(session) == []


def test_relay_broadcasts_other_events(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    relay = UpdateRelay(redis=None, channel="test")
    session = registry.register()

    relay.handle_message(json.dumps({"origin": "peer", "event": "newdata"}), notifier)
    assert drain(session) == [{"event": "newdata"}]


def test_relay_ignores_garbage():
    relay = UpdateRelay(redis=None, channel="test")
    assert relay.handle_message("not json", MutationNotifier(SessionRegistry(queue_size=1))) == 0


class FakeRedis:
    def __init__(self):
        self.messages = []

    async def publish(self, channel, payload):
        self.messages.append((channel, json.loads(payload)))


@pytest.mark.asyncio
async def test_relay_publish_tags_origin():
    redis = FakeRedis()
    relay = UpdateRelay(redis, channel="test")

    relay.publish("update", [CAR_ROW])
    for task in list(relay._pending):
        await task

    assert redis.messages == [
        ("test", {"origin": relay.origin, "event": "update", "data": [CAR_ROW]})
    ]


def test_relay_survives_descriptor_without_table(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    relay = UpdateRelay(redis=None, channel="test")
    session = _session(registry, "car")

    bad = json.dumps({"origin": "peer", "event": "update", "data": [{"data": []}, CAR_ROW]})
    assert relay.handle_message(bad, notifier) == 1
    assert relay.handle_message(json.dumps(["not", "a", "message"]), notifier) == 0
    assert drain(session) == [{"event": "update", "data": [CAR_ROW]}]


class FakePubSub:
    def __init__(self, messages=None, error=None):
        self.messages = messages or []
        self.error = error
        self.closed = False

    async def subscribe(self, channel):
        if self.error is not None:
            raise self.error

    async def listen(self):
        for message in self.messages:
            yield message
        await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class FlakyRedis:
    """First subscription fails, the next one delivers messages."""

    def __init__(self, *pubsubs):
        self.pubsubs = list(pubsubs)

    def pubsub(self):
        return self.pubsubs.pop(0)


@pytest.mark.asyncio
async def test_relay_listener_reconnects_and_skips_bad_messages(drain):
    registry = SessionRegistry(queue_size=10)
    notifier = MutationNotifier(registry)
    session = _session(registry, "car")
    good = json.dumps({"origin": "peer", "event": "update", "data": [CAR_ROW]})
    broken = FakePubSub(error=ConnectionError("redis went away"))
    healthy = FakePubSub(
        messages=[
            {"type": "subscribe", "data": 1},
            {"type": "message", "data": "{{{"},
            {"type": "message", "data": good},
        ]
    )
    relay = UpdateRelay(FlakyRedis(broken, healthy), channel="test")

    task = asyncio.create_task(relay.listen(notifier, retry_delay=0))
    for _ in range(100):
        if not session.outbox.empty():
            break
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert broken.closed
    assert drain(session) == [{"event": "update", "data": [CAR_ROW]}]
