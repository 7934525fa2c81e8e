"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The session registry and notifier are built here, once per
app, and exposed on app.state for routes and the WebSocket endpoint.
Lifespan manages startup/shutdown (Redis relay, database engine).
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pinewood import __version__
from pinewood.api import api_router
from pinewood.config import settings
from pinewood.errors import PinewoodError
from pinewood.realtime.notifier import MutationNotifier
from pinewood.realtime.registry import SessionRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "pinewood.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    # Redis relays pushes between worker processes
    from pinewood.realtime.pubsub import UpdateRelay, close_redis, init_redis

    relay_task = None
    try:
        redis = await init_redis()
        relay = UpdateRelay(redis)
        app.state.notifier.relay = relay
        relay_task = asyncio.create_task(relay.listen(app.state.notifier))
        logger.info("pinewood.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("pinewood.redis_unavailable", error=str(e))
        # Redis is optional; single-process fan-out still works

    yield

    # Shutdown
    logger.info("pinewood.shutdown", connections=len(app.state.registry))

    if relay_task is not None:
        relay_task.cancel()
        try:
            await relay_task
        except asyncio.CancelledError:
            pass
        app.state.notifier.relay = None

    await close_redis()

    # Close database engine
    from pinewood.db.engine import engine
    await engine.dispose()


def _field_message(exc: RequestValidationError) -> str:
    """First validation problem as "<field> is required/invalid"."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # loc looks like ("body", "tables", 0); report the innermost field name
    names = [
        part
        for part in first.get("loc", ())
        if isinstance(part, str) and part not in ("body", "query")
    ]
    if not names:
        return "Request body is required"
    problem = "is required" if first.get("type") == "missing" else "is invalid"
    return f"{names[-1]} {problem}"


def register_exception_handlers(app: FastAPI) -> None:
    """Render every domain error as {"error": message}.

    Learn: Domain errors answer HTTP 200 with an error body (the browser
    clients check `error`, not the status). Only transport-level problems
    keep their status: unmatched routes (404), method mismatch, and the
    image upload's 403.
    """

    @app.exception_handler(PinewoodError)
    async def handle_domain_error(request: Request, exc: PinewoodError):
        logger.info(
            "pinewood.request_failed",
            error_type=type(exc).__name__,
            error=exc.message,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = _field_message(exc)
        logger.info("pinewood.validation_failed", error=message, path=request.url.path)
        return JSONResponse(status_code=200, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Pinewood Derby API",
        description="Events, cars, results, check-in and voting with live updates",
        version=__version__,
        lifespan=lifespan,
    )

    # One registry per process; the notifier scans it on every write
    app.state.registry = SessionRegistry()
    app.state.notifier = MutationNotifier(app.state.registry)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from pinewood.middleware.rate_limit import RateLimitMiddleware
    from pinewood.middleware.request_id import RequestIdMiddleware
    from pinewood.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route (live table updates)
    from pinewood.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: pinewood.main:app)
app = create_app()
