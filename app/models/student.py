import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.absence_request import AbsenceRequest
    from app.models.lesson_evaluation import LessonEvaluation
    from app.models.parent_child_link import ParentChildLink


def _new_student_id() -> str:
    return str(uuid.uuid4())


class Student(Base, TimestampMixin):
    """Roster entry. The whole roster is deleted and recreated on every bulk import,
    so ``id`` is never stable across imports and is never reused."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_student_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    class_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    position_in_class: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships (owner FKs are ON DELETE SET NULL, handled by the database)
    parent_links: Mapped[list["ParentChildLink"]] = relationship(
        "ParentChildLink", back_populates="student", passive_deletes=True
    )
    absence_requests: Mapped[list["AbsenceRequest"]] = relationship(
        "AbsenceRequest", back_populates="student", passive_deletes=True
    )
    lesson_evaluations: Mapped[list["LessonEvaluation"]] = relationship(
        "LessonEvaluation", back_populates="student", passive_deletes=True
    )
