import enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.student import Student


class EvaluationCategory(str, enum.Enum):
    D = "D"
    B = "B"
    HW = "HW"
    AP = "AP"


class LessonEvaluation(Base, TimestampMixin):
    __tablename__ = "lesson_evaluations"
    __table_args__ = (
        UniqueConstraint(
            "eval_student_id", "chapter_number", "category", name="uq_lesson_evaluation_slot"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    eval_student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Recovery key
    student_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    stored_class_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[Optional[EvaluationCategory]] = mapped_column(
        Enum(EvaluationCategory), nullable=True
    )
    stored_category: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    rating: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    teacher_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    student: Mapped[Optional["Student"]] = relationship(
        "Student", back_populates="lesson_evaluations"
    )

    @property
    def slot_category(self) -> Optional[EvaluationCategory]:
        """Category half of the (owner, chapter, category) slot.

        The stored copy wins because ``category`` may be cleared when the
        evaluation criteria are rebuilt.
        """
        if self.stored_category:
            try:
                return EvaluationCategory(self.stored_category.strip().upper())
            except ValueError:
                pass
        return self.category

    @property
    def has_notes(self) -> bool:
        return bool(self.teacher_notes and self.teacher_notes.strip())
