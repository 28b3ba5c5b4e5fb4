from app.models.base import Base, TimestampMixin
from app.models.student import Student
from app.models.parent import Parent
from app.models.parent_child_link import ParentChildLink
from app.models.absence_request import AbsenceRequest, AbsenceStatus
from app.models.lesson_evaluation import LessonEvaluation, EvaluationCategory

__all__ = [
    "Base",
    "TimestampMixin",
    "Student",
    "Parent",
    "ParentChildLink",
    "AbsenceRequest",
    "AbsenceStatus",
    "LessonEvaluation",
    "EvaluationCategory",
]
