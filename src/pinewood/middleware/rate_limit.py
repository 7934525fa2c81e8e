"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each client IP gets one counter per minute in Redis, with a
separate, much smaller budget for /user/login to slow password guessing.
The counter is shared by every worker process, unlike an in-memory dict.

Ballots are cheap to cast, so /vote is counted like any other request;
the per-IP budget is what keeps a single phone from stuffing the box.

Rate limiting is skipped when Redis is unavailable (e.g., in tests).
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

LOGIN_PATH = "/api/v4/user/login"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request budget per minute."""

    def __init__(self, app, default_rpm: int = 300, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def _count(self, key: str) -> int | None:
        """Increment the window counter; None when Redis can't be used."""
        try:
            from pinewood.realtime.pubsub import get_redis

            redis = get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)  # outlive the window
            return count
        except Exception as e:
            logger.debug("ratelimit.skipped", error=str(e))
            return None

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        is_login = request.url.path == LOGIN_PATH
        rpm = self.auth_rpm if is_login else self.default_rpm
        bucket = "login" if is_login else "api"
        window = int(time.time() // 60)

        count = await self._count(f"pinewood:rl:{client_ip}:{bucket}:{window}")
        if count is None:
            return await call_next(request)

        if count > rpm:
            logger.warning("ratelimit.exceeded", client=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
