"""Service base — shared store-error handling.

Learn: Services own the database work behind each handler. Any SQLAlchemy
failure is rolled back, logged once here, and re-raised as StoreError so
routes never see driver exceptions.
"""

from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.errors import StoreError

logger = structlog.get_logger()


class BaseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def store(self, operation: str):
        """Run a block of statements; translate driver errors to StoreError."""
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            message = str(getattr(e, "orig", None) or e)
            logger.error("pinewood.store_error", operation=operation, error=message)
            raise StoreError(message, context={"operation": operation}) from e
