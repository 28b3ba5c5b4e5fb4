import enum
from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.student import Student


class AbsenceStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AbsenceRequest(Base, TimestampMixin):
    __tablename__ = "absence_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Recovery key
    student_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    class_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    absence_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[AbsenceStatus] = mapped_column(
        Enum(AbsenceStatus), default=AbsenceStatus.pending, nullable=False
    )

    # Relationships
    student: Mapped[Optional["Student"]] = relationship("Student", back_populates="absence_requests")
