"""Per-family configuration for the generic reconciliation routine.

The three owned-record families differ only in column names, in whether rows
occupy a unique slot that may need merging, and in which payload fields are
mergeable. Everything else is shared.
"""

import enum
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.absence_requests import crud_absence_request
from app.crud.lesson_evaluations import crud_lesson_evaluation
from app.crud.owned_records import CRUDOwnedRecord
from app.crud.parent_child_links import crud_parent_child_link
from app.models.absence_request import AbsenceRequest
from app.models.lesson_evaluation import LessonEvaluation
from app.models.parent_child_link import ParentChildLink
from app.services.identity_index import IdentitySnapshot, RosterEntry


class RecordFamilyName(str, enum.Enum):
    parent_child_links = "parent_child_links"
    absence_requests = "absence_requests"
    lesson_evaluations = "lesson_evaluations"


IncumbentFinder = Callable[[AsyncSession, Any, str], Awaitable[Optional[Any]]]


def _no_context(row: Any) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class RecordFamily:
    name: RecordFamilyName
    label: str
    crud: CRUDOwnedRecord
    # Fields where a present orphan value beats the incumbent's during a merge
    merge_fields: tuple[str, ...] = ()
    notes_field: Optional[str] = None
    find_incumbent: Optional[IncumbentFinder] = None
    slot_label: Callable[[Any], Optional[str]] = lambda row: None
    describe: Callable[[Any], dict[str, Any]] = _no_context
    before_attach: Optional[Callable[[Any], None]] = None
    # Copies the orphan's slot onto the incumbent it is merged into
    adopt_slot: Optional[Callable[[Any, Any], None]] = None

    @property
    def owner_field(self) -> str:
        return self.crud.owner_field

    def snapshot(self, row: Any) -> IdentitySnapshot:
        return IdentitySnapshot(
            getattr(row, self.crud.name_field), getattr(row, self.crud.class_field)
        )

    def notes_of(self, row: Any) -> Optional[str]:
        if self.notes_field is None:
            return None
        return getattr(row, self.notes_field)

    def has_notes(self, row: Any) -> bool:
        notes = self.notes_of(row)
        return bool(notes and notes.strip())

    def restamp_identity(self, row: Any, student: RosterEntry) -> None:
        """Point the row at ``student`` and refresh its snapshot to the roster spelling."""
        setattr(row, self.owner_field, student.student_id)
        setattr(row, self.crud.name_field, student.name)
        setattr(row, self.crud.class_field, student.class_id)

    def restamp(self, row: Any, student: RosterEntry) -> None:
        self.restamp_identity(row, student)
        if self.before_attach is not None:
            self.before_attach(row)

    def restamp_incumbent(self, incumbent: Any, orphan: Any, student: RosterEntry) -> None:
        """Re-stamp the merge target. Its slot is the one the orphan was matched on."""
        self.restamp_identity(incumbent, student)
        if self.adopt_slot is not None:
            self.adopt_slot(incumbent, orphan)


# ---------------------------------------------------------------------------
# Lesson evaluations
# ---------------------------------------------------------------------------


async def _find_evaluation_incumbent(
    db: AsyncSession, row: LessonEvaluation, student_id: str
) -> Optional[LessonEvaluation]:
    category = row.slot_category
    if category is None:
        return None
    return await crud_lesson_evaluation.get_slot_occupant(
        db, student_id, row.chapter_number, category, exclude_id=row.id
    )


def _evaluation_slot_label(row: LessonEvaluation) -> Optional[str]:
    category = row.slot_category
    return f"chapter {row.chapter_number} / {category.value if category else '?'}"


def _stamp_evaluation_slot(row: LessonEvaluation) -> None:
    category = row.slot_category
    if category is not None:
        row.category = category
        row.stored_category = category.value


def _adopt_evaluation_slot(incumbent: LessonEvaluation, orphan: LessonEvaluation) -> None:
    category = orphan.slot_category
    if category is not None:
        incumbent.category = category
        incumbent.stored_category = category.value


def _describe_evaluation(row: LessonEvaluation) -> dict[str, Any]:
    category = row.slot_category
    return {
        "chapter": row.chapter_number,
        "category": category.value if category else None,
        "rating": row.rating,
    }


# ---------------------------------------------------------------------------
# Absence requests / parent links
# ---------------------------------------------------------------------------


def _describe_absence(row: AbsenceRequest) -> dict[str, Any]:
    return {
        "absence_date": row.absence_date.isoformat() if row.absence_date else None,
        "status": row.status.value if row.status else None,
    }


def _describe_link(row: ParentChildLink) -> dict[str, Any]:
    return {"parent_id": row.parent_id, "verified": row.verified}


PARENT_CHILD_LINKS = RecordFamily(
    name=RecordFamilyName.parent_child_links,
    label="parent-child link",
    crud=crud_parent_child_link,
    describe=_describe_link,
)

ABSENCE_REQUESTS = RecordFamily(
    name=RecordFamilyName.absence_requests,
    label="absence request",
    crud=crud_absence_request,
    describe=_describe_absence,
)

LESSON_EVALUATIONS = RecordFamily(
    name=RecordFamilyName.lesson_evaluations,
    label="lesson evaluation",
    crud=crud_lesson_evaluation,
    merge_fields=("rating",),
    notes_field="teacher_notes",
    find_incumbent=_find_evaluation_incumbent,
    slot_label=_evaluation_slot_label,
    describe=_describe_evaluation,
    before_attach=_stamp_evaluation_slot,
    adopt_slot=_adopt_evaluation_slot,
)

FAMILIES: dict[RecordFamilyName, RecordFamily] = {
    family.name: family for family in (PARENT_CHILD_LINKS, ABSENCE_REQUESTS, LESSON_EVALUATIONS)
}

# Evaluations go last: they must see the final roster after every student insert.
RECONCILE_ORDER: tuple[RecordFamilyName, ...] = (
    RecordFamilyName.parent_child_links,
    RecordFamilyName.absence_requests,
    RecordFamilyName.lesson_evaluations,
)


def get_family(name: "str | RecordFamilyName") -> RecordFamily:
    try:
        return FAMILIES[RecordFamilyName(name)]
    except ValueError:
        valid = ", ".join(f.value for f in RecordFamilyName)
        raise ValueError(f"Unknown record family {name!r}. Expected one of: {valid}") from None
