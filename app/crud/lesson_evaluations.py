from typing import Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.owned_records import CRUDOwnedRecord, sql_strip
from app.models.lesson_evaluation import EvaluationCategory, LessonEvaluation


class CRUDLessonEvaluation(CRUDOwnedRecord[LessonEvaluation]):
    def notes_criteria(self):
        return and_(
            LessonEvaluation.teacher_notes.is_not(None),
            sql_strip(LessonEvaluation.teacher_notes) != "",
        )

    def slot_criteria(self, chapter_number: int, category: EvaluationCategory):
        """Match a slot by category, falling back to the stored copy when category was cleared."""
        return and_(
            LessonEvaluation.chapter_number == chapter_number,
            or_(
                LessonEvaluation.category == category,
                and_(
                    LessonEvaluation.category.is_(None),
                    func.upper(sql_strip(LessonEvaluation.stored_category)) == category.value,
                ),
            ),
        )

    async def get_slot_occupant(
        self,
        db: AsyncSession,
        student_id: str,
        chapter_number: int,
        category: EvaluationCategory,
        exclude_id: Optional[int] = None,
    ) -> Optional[LessonEvaluation]:
        query = select(LessonEvaluation).where(
            LessonEvaluation.eval_student_id == student_id,
            self.slot_criteria(chapter_number, category),
        )
        if exclude_id is not None:
            query = query.where(LessonEvaluation.id != exclude_id)
        result = await db.execute(query.order_by(LessonEvaluation.id).limit(1))
        return result.scalar_one_or_none()

    async def get_orphaned_with_notes(
        self, db: AsyncSession, limit: Optional[int] = None
    ) -> Sequence[LessonEvaluation]:
        query = (
            select(LessonEvaluation)
            .where(self.orphan_criteria(), self.notes_criteria())
            .order_by(LessonEvaluation.updated_at.desc(), LessonEvaluation.id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return result.scalars().all()


crud_lesson_evaluation = CRUDLessonEvaluation(
    LessonEvaluation,
    owner_field="eval_student_id",
    name_field="student_name",
    class_field="stored_class_id",
)
