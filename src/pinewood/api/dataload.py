"""Bulk data load route for the scorekeeping station.

Learn: After a dump is applied every connected client is told to refetch
(`newdata`). The dump can touch any table, so there is no per-table
descriptor to send.
"""

from fastapi import APIRouter, Depends

from pinewood.auth.dependencies import check_secret
from pinewood.realtime.notifier import NEWDATA_EVENT, MutationNotifier, get_notifier
from pinewood.schemas.checkin import DataLoadRequest
from pinewood.services.dataload_service import load_sql

router = APIRouter()


@router.post("/mysqldump")
async def mysqldump(
    body: DataLoadRequest,
    notifier: MutationNotifier = Depends(get_notifier),
):
    check_secret(body.secret)
    await load_sql(body.sql)
    notifier.emit_all(NEWDATA_EVENT)
    return {"ok": True}
