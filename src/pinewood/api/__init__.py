"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied per route (user/admin guards on the handlers that
need them) because most reads are public: scoreboards and the voting
page run without logging in. The shared-secret endpoints check the
secret inside the handler.
"""

from fastapi import APIRouter

from pinewood.api.cars import router as cars_router
from pinewood.api.checkins import router as checkins_router
from pinewood.api.dataload import router as dataload_router
from pinewood.api.events import router as events_router
from pinewood.api.health import router as health_router
from pinewood.api.images import router as images_router
from pinewood.api.realtime import router as realtime_router
from pinewood.api.users import router as users_router

api_router = APIRouter(prefix="/api/v4")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(cars_router, tags=["cars", "results"])
api_router.include_router(checkins_router, tags=["check-in", "voting"])
api_router.include_router(images_router, tags=["images"])
api_router.include_router(realtime_router, tags=["realtime"])
api_router.include_router(dataload_router, tags=["dataload"])
