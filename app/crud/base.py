from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    def __init__(self, model: type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        return await db.get(self.model, id)

    async def count(self, db: AsyncSession, *criteria) -> int:
        query = select(func.count()).select_from(self.model)
        if criteria:
            query = query.where(*criteria)
        result = await db.execute(query)
        return result.scalar_one()
