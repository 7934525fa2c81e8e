"""Security and caching headers middleware.

Learn: Every response gets the standard hardening headers
(nosniff, no framing, referrer policy; HSTS only over HTTPS).

Caching differs by content: JSON must never be cached because scoreboards
poll it during a race, while photos are safe to cache: clients append the
car's imageVersion to the URL, so a new upload is a new URL.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

PHOTO_MAX_AGE = 24 * 3600


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security and cache headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        if request.url.path.endswith(".jpg") and response.status_code == 200:
            response.headers["Cache-Control"] = f"public, max-age={PHOTO_MAX_AGE}"
        else:
            response.headers.setdefault("Cache-Control", "no-store")
        return response
