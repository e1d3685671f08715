from typing import Optional

from sqlalchemy import select, func, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sptrack.core.exceptions import ConflictError


class BaseService:
    """Services share the request's session and own its commits"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, conflict_message: str, field: Optional[str] = None) -> None:
        """Commit, translating a constraint violation into ConflictError"""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(conflict_message, field=field)

    async def _delete_rows(self, model, *criteria) -> int:
        """
        Bulk delete rows of model matching criteria inside the current
        transaction.

        Returns:
            Number of rows removed
        """
        count = await self.db.scalar(
            select(func.count()).select_from(model).where(*criteria)
        ) or 0
        if count:
            await self.db.execute(delete(model).where(*criteria))
        return count

    async def _update_rows(self, model, values: dict, *criteria) -> int:
        """
        Bulk update rows of model matching criteria inside the current
        transaction.

        Returns:
            Number of rows changed
        """
        count = await self.db.scalar(
            select(func.count()).select_from(model).where(*criteria)
        ) or 0
        if count:
            await self.db.execute(update(model).where(*criteria).values(**values))
        return count
