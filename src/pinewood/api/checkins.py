"""Kiosk check-in and voting routes.

Learn: /checkin is posted by an HTML form on the kiosk page, so it reads
form fields and answers with a redirect to a confirmation or failure page
instead of JSON. /vote always returns the same body, so a voter can't
probe which car ids exist.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.api.params import parse_flag
from pinewood.auth.dependencies import check_secret
from pinewood.db.engine import get_db
from pinewood.errors import PinewoodError
from pinewood.schemas.checkin import CheckInAdded, VoteRequest
from pinewood.services.checkin_service import CheckInService
from pinewood.services.image_store import checkin_images

logger = structlog.get_logger()
router = APIRouter()

CONFIRMATION_PAGE = "/check-in-confirmation"
FAILURE_PAGE = "/check-in-failed"


def _svc(db: AsyncSession = Depends(get_db)) -> CheckInService:
    return CheckInService(db)


@router.post("/checkin")
async def check_in(
    name: str = Form(""),
    nickname: Optional[str] = Form(None),
    den: Optional[str] = Form(None),
    photo: str = Form(""),
    svc: CheckInService = Depends(_svc),
):
    try:
        await svc.check_in(checkin_images(), name, nickname, den, photo)
    except (PinewoodError, OSError) as e:
        logger.warning("pinewood.checkin_failed", error=str(e))
        return RedirectResponse(FAILURE_PAGE, status_code=302)
    return RedirectResponse(CONFIRMATION_PAGE, status_code=302)


@router.post("/checkinadded")
async def check_in_added(body: CheckInAdded, svc: CheckInService = Depends(_svc)):
    await svc.mark_added(body.check_in_id, body.event_id)
    return {"success": True}


@router.get("/checkinlist")
async def check_in_list(
    secret: Optional[str] = Query(None),
    not_added: Optional[str] = Query(None, alias="notAdded"),
    recent: Optional[str] = Query(None),
    svc: CheckInService = Depends(_svc),
):
    check_secret(secret)
    rows = await svc.list_checkins(
        not_added=parse_flag(not_added), recent=parse_flag(recent)
    )
    return [r.to_wire() for r in rows]


@router.post("/vote")
async def vote(request: Request, svc: CheckInService = Depends(_svc)):
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/x-www-form-urlencoded"):
            payload = dict(await request.form())
        else:
            payload = await request.json()
        body = VoteRequest.model_validate(payload)
    except ValueError:
        body = VoteRequest()
    recorded = await svc.cast_votes(body.votes)
    logger.info("pinewood.ballot", recorded=recorded)
    return {"message": "Thank you"}
