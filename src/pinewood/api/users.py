"""User API — login, token check, and admin account management.

Learn: Routes for user authentication and account lifecycle:
- POST /user/login  → username/password → {token, user}
- GET  /user/verify → claims of the presented token
- GET  /user/all, POST /user/{create,update,delete} → admin only

Account changes are pushed to sockets subscribed to the "user" table.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.auth.dependencies import CurrentIdentity, require_admin, require_user
from pinewood.db.engine import get_db
from pinewood.realtime.notifier import MutationNotifier, get_notifier, publish_mutation
from pinewood.schemas.user import LoginRequest, UserCreate, UserDelete, UserUpdate
from pinewood.services.user_service import UserService

router = APIRouter(prefix="/user")

_admin = [Depends(require_admin)]


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/login")
async def login(body: LoginRequest, svc: UserService = Depends(_svc)):
    return await svc.login(body.username, body.password)


@router.get("/verify")
async def verify(identity: CurrentIdentity = Depends(require_user)):
    return {"user": identity.claims}


@router.get("/all", dependencies=_admin)
async def list_users(svc: UserService = Depends(_svc)):
    return [u.to_wire() for u in await svc.list_users()]


@router.post("/create", dependencies=_admin)
async def create_user(
    body: UserCreate,
    svc: UserService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.create_user(body))


@router.post("/update", dependencies=_admin)
async def update_user(
    body: UserUpdate,
    svc: UserService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.update_user(body))


@router.post("/delete", dependencies=_admin)
async def delete_user(
    body: UserDelete,
    svc: UserService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.delete_user(body.user_id))
