"""Subscribe route — choose which tables a live connection hears about.

Learn: A browser first opens /ws, which replies with its connectionId,
then posts that id here with the tables it wants. Subscriptions only
grow; there is no unsubscribe short of reconnecting.
"""

from fastapi import APIRouter, Depends

from pinewood.realtime.registry import SessionRegistry, get_registry
from pinewood.schemas.realtime import SubscribeRequest, SubscribeResponse

router = APIRouter()


@router.post("/subscribe")
async def subscribe(
    body: SubscribeRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    tables = registry.subscribe(body.connection_id, body.tables)
    return SubscribeResponse(
        connection_id=body.connection_id, tables=sorted(tables)
    ).to_wire()
