from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.models.student import Student


class CRUDStudent(CRUDBase[Student]):
    async def get_roster(self, db: AsyncSession) -> Sequence[Student]:
        """Full current roster, in import order so last-write-wins is deterministic."""
        result = await db.execute(
            select(Student).order_by(Student.class_id, Student.position_in_class, Student.id)
        )
        return result.scalars().all()


crud_student = CRUDStudent(Student)
