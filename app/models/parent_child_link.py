from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.parent import Parent
    from app.models.student import Student


class ParentChildLink(Base, TimestampMixin):
    __tablename__ = "parent_children"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("parents.id"), nullable=False, index=True
    )
    student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Recovery key: overwritten with the roster spelling when a link is verified
    child_name_submitted: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    class_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    parent: Mapped["Parent"] = relationship("Parent", back_populates="children")
    student: Mapped[Optional["Student"]] = relationship("Student", back_populates="parent_links")
