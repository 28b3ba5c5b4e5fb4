from app.crud.students import crud_student
from app.crud.parent_child_links import crud_parent_child_link
from app.crud.absence_requests import crud_absence_request
from app.crud.lesson_evaluations import crud_lesson_evaluation

__all__ = [
    "crud_student",
    "crud_parent_child_link",
    "crud_absence_request",
    "crud_lesson_evaluation",
]
