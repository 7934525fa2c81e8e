"""User service — login and admin CRUD for scorekeeper accounts.

Learn: Passwords are only ever written as bcrypt hashes. Accounts that
still hold a legacy plaintext password are upgraded the first time they
log in successfully.
"""

from typing import Optional

import structlog
from sqlalchemy import delete, select, update

from pinewood.auth.jwt import create_access_token
from pinewood.auth.password import hash_password, needs_upgrade, verify_password
from pinewood.db.models import User
from pinewood.errors import NotFoundError, PinewoodError, ValidationError
from pinewood.schemas.common import ChangeDescriptor
from pinewood.schemas.user import UserCreate, UserRead, UserUpdate
from pinewood.services.base import BaseService

logger = structlog.get_logger()

LOGIN_FAILED = "Incorrect username or password."


class UserService(BaseService):
    """Business logic for user accounts."""

    async def _by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def _load(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(User.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─── Login ───────────────────────────────────────────

    async def login(self, username: str, password: str) -> dict:
        """Check credentials and issue a token.

        Returns {"token", "user"}; raises PinewoodError with a deliberately
        vague message for both unknown users and wrong passwords.
        """
        async with self.store("user.login"):
            user = await self._by_username(username)
            if user is None or not verify_password(password, user.password):
                logger.info("pinewood.login_failed", username=username)
                raise PinewoodError(LOGIN_FAILED)

            if needs_upgrade(user.password):
                user.password = hash_password(password)
                await self.db.commit()

        profile = UserRead.model_validate(user)
        token = create_access_token(
            {
                "userId": profile.user_id,
                "username": profile.username,
                "admin": profile.admin,
                "eventIds": profile.event_ids,
            }
        )
        logger.info("pinewood.login", user_id=profile.user_id)
        return {"token": token, "user": profile.to_wire()}

    # ─── Read ────────────────────────────────────────────

    async def list_users(self) -> list[UserRead]:
        async with self.store("user.list"):
            result = await self.db.execute(select(User).order_by(User.username))
            return [UserRead.model_validate(u) for u in result.scalars().all()]

    # ─── Write ───────────────────────────────────────────

    async def create_user(self, body: UserCreate) -> ChangeDescriptor:
        async with self.store("user.create"):
            if await self._by_username(body.username) is not None:
                raise ValidationError("username", "is already taken")
            user = User(
                username=body.username,
                password=hash_password(body.password),
                admin=body.admin,
                event_ids=body.event_ids,
            )
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)

        logger.info("pinewood.user_created", user_id=user.user_id, admin=user.admin)
        return ChangeDescriptor.rows("user", [UserRead.model_validate(user)])

    async def update_user(self, body: UserUpdate) -> ChangeDescriptor:
        values = body.model_dump(exclude_unset=True, exclude={"user_id"})
        if values.get("password") is not None:
            values["password"] = hash_password(values["password"])
        values = {k: v for k, v in values.items() if v is not None or k == "event_ids"}

        async with self.store("user.update"):
            if values:
                result = await self.db.execute(
                    update(User)
                    .where(User.user_id == body.user_id)
                    .values({getattr(User, k): v for k, v in values.items()})
                )
                if result.rowcount == 0:
                    raise NotFoundError("User", body.user_id)
                await self.db.commit()
            user = await self._load(body.user_id)

        if user is None:
            raise NotFoundError("User", body.user_id)
        logger.info("pinewood.user_updated", user_id=body.user_id, fields=sorted(values))
        return ChangeDescriptor.rows("user", [UserRead.model_validate(user)])

    async def delete_user(self, user_id: int) -> ChangeDescriptor:
        async with self.store("user.delete"):
            result = await self.db.execute(delete(User).where(User.user_id == user_id))
            if result.rowcount == 0:
                raise NotFoundError("User", user_id)
            await self.db.commit()

        logger.info("pinewood.user_deleted", user_id=user_id)
        return ChangeDescriptor.removed("user", [user_id])
