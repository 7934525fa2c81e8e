"""Redis pub/sub — relays pushes between API worker processes.

Learn: Each uvicorn worker has its own SessionRegistry, so a write handled
by worker A must also reach sockets held by worker B. Every notify/emit is
published on one channel; each worker's listener hands messages from
*other* workers to its local notifier. Messages carry an origin id so a
worker never delivers its own publish twice.

Redis pub/sub is fire-and-forget, matching the at-most-once push
contract. Without Redis the app runs single-process and skips the relay.
"""

import asyncio
import json
import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from pinewood.config import settings

logger = structlog.get_logger()

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    _redis = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection; an unreachable server leaves Redis uninitialized
    try:
        await _redis.ping()
    except Exception:
        await _redis.aclose()
        _redis = None
        raise
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


class UpdateRelay:
    """Publishes local pushes and replays peers' pushes locally."""

    def __init__(self, redis: aioredis.Redis, channel: Optional[str] = None):
        self.redis = redis
        self.channel = channel or settings.updates_channel
        self.origin = uuid.uuid4().hex
        self._pending: set[asyncio.Task] = set()

    def publish(self, event: str, data: Any = None) -> None:
        """Schedule a publish without making the caller wait for Redis."""
        payload = json.dumps({"origin": self.origin, "event": event, "data": data})
        task = asyncio.create_task(self._publish(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, payload: str) -> None:
        try:
            await self.redis.publish(self.channel, payload)
        except Exception as e:
            logger.warning("realtime.relay_publish_failed", error=str(e))

    def handle_message(self, raw: str, notifier) -> int:
        """Deliver one relayed message locally. Returns sessions reached.

        A malformed message is logged and dropped; it never stops the
        listener.
        """
        try:
            message = json.loads(raw)
            if message.get("origin") == self.origin:
                return 0
            event = message.get("event")
            if event == "update":
                return notifier.deliver(message.get("data") or [])
            return notifier.deliver_all(event, message.get("data"))
        except Exception:
            logger.exception("realtime.relay_bad_message")
            return 0

    async def listen(self, notifier, retry_delay: float = 1.0) -> None:
        """Forward peers' messages to the local notifier until cancelled.

        Learn: A dropped Redis connection ends the subscription; the loop
        resubscribes after a pause instead of letting the task die, so
        this process keeps hearing its peers once Redis is back.
        """
        while True:
            try:
                await self._listen_once(notifier)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("realtime.relay_disconnected", error=str(e))
            await asyncio.sleep(retry_delay)

    async def _listen_once(self, notifier) -> None:
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(self.channel)
            async for message in pubsub.listen():
                if message["type"] == "message":
                    self.handle_message(message["data"], notifier)
        finally:
            await pubsub.aclose()
