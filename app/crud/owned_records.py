"""Queries shared by every family of student-owned records.

Each family stores a nullable owner FK plus a denormalized (name, class) snapshot.
The orphan/broken predicates live here so the scanner and the stats counters use
exactly the same definition.
"""

from typing import Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase, ModelType

# Whitespace Python's str.strip() removes but SQL TRIM() does not
_OTHER_WHITESPACE = ("\t", "\n", "\r", "\x0b", "\x0c", "\xa0")


def sql_strip(column):
    """SQL counterpart of ``str.strip()`` for snapshot columns."""
    expr = column
    for char in _OTHER_WHITESPACE:
        expr = func.replace(expr, char, " ")
    return func.trim(expr)


class CRUDOwnedRecord(CRUDBase[ModelType]):
    def __init__(
        self,
        model: type[ModelType],
        *,
        owner_field: str,
        name_field: str,
        class_field: str,
    ):
        super().__init__(model)
        self.owner_field = owner_field
        self.name_field = name_field
        self.class_field = class_field

    @property
    def owner_column(self):
        return getattr(self.model, self.owner_field)

    @property
    def name_column(self):
        return getattr(self.model, self.name_field)

    @property
    def class_column(self):
        return getattr(self.model, self.class_field)

    def linked_criteria(self):
        return self.owner_column.is_not(None)

    def snapshot_present_criteria(self):
        name, class_id = self.name_column, self.class_column
        return and_(
            name.is_not(None),
            sql_strip(name) != "",
            class_id.is_not(None),
            sql_strip(class_id) != "",
        )

    def snapshot_missing_criteria(self):
        name, class_id = self.name_column, self.class_column
        return or_(
            name.is_(None),
            sql_strip(name) == "",
            class_id.is_(None),
            sql_strip(class_id) == "",
        )

    def orphan_criteria(self):
        return and_(self.owner_column.is_(None), self.snapshot_present_criteria())

    def broken_criteria(self):
        return and_(self.owner_column.is_(None), self.snapshot_missing_criteria())

    async def get_orphans(self, db: AsyncSession) -> Sequence[ModelType]:
        result = await db.execute(
            select(self.model).where(self.orphan_criteria()).order_by(self.model.id)
        )
        return result.scalars().all()

    async def get_broken(self, db: AsyncSession) -> Sequence[ModelType]:
        result = await db.execute(
            select(self.model).where(self.broken_criteria()).order_by(self.model.id)
        )
        return result.scalars().all()

    async def get_linked_without_snapshot(self, db: AsyncSession) -> Sequence[ModelType]:
        """Linked rows that would turn broken if the roster were wiped now."""
        result = await db.execute(
            select(self.model)
            .where(self.linked_criteria(), self.snapshot_missing_criteria())
            .order_by(self.model.id)
        )
        return result.scalars().all()
