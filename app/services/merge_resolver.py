"""Attach a matched orphan to its student, or merge it into the row already at its slot.

Only families with a unique slot (lesson evaluations) can meet an incumbent;
the others always attach. Teacher notes are never dropped in favour of an
empty value.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.reconciliation import RemapStatus
from app.services.identity_index import RosterEntry
from app.services.record_families import RecordFamily

logger = logging.getLogger(__name__)


class NotesPolicy(str, enum.Enum):
    prefer_orphan = "prefer_orphan"
    concatenate = "concatenate"


def has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def merge_notes(
    orphan_notes: Optional[str],
    incumbent_notes: Optional[str],
    policy: NotesPolicy = NotesPolicy.prefer_orphan,
    separator: str = "\n\n",
) -> Optional[str]:
    """Combine the notes of an orphan and the incumbent at the same slot.

    The orphan copy is the older one and may be the only record of what a
    teacher wrote, so it takes precedence. Under ``concatenate`` both texts are
    kept, orphan first, unless they are identical.
    """
    orphan_has, incumbent_has = has_text(orphan_notes), has_text(incumbent_notes)
    if orphan_has and incumbent_has:
        if policy == NotesPolicy.concatenate and orphan_notes.strip() != incumbent_notes.strip():
            return f"{orphan_notes.rstrip()}{separator}{incumbent_notes.lstrip()}"
        return orphan_notes
    if orphan_has:
        return orphan_notes
    return incumbent_notes


def merge_value(orphan_value: Any, incumbent_value: Any) -> Any:
    if orphan_value is None or orphan_value == "":
        return incumbent_value
    return orphan_value


@dataclass
class MergePlan:
    values: dict[str, Any] = field(default_factory=dict)
    notes_preserved: bool = False
    incumbent_notes_replaced: bool = False


def plan_merge(
    family: RecordFamily,
    orphan: Any,
    incumbent: Any,
    policy: NotesPolicy = NotesPolicy.prefer_orphan,
    separator: str = "\n\n",
) -> MergePlan:
    plan = MergePlan()
    for name in family.merge_fields:
        plan.values[name] = merge_value(getattr(orphan, name), getattr(incumbent, name))

    if family.notes_field is not None:
        orphan_notes = family.notes_of(orphan)
        incumbent_notes = family.notes_of(incumbent)
        merged = merge_notes(orphan_notes, incumbent_notes, policy, separator)
        plan.values[family.notes_field] = merged
        plan.notes_preserved = has_text(orphan_notes) or has_text(incumbent_notes)
        plan.incumbent_notes_replaced = has_text(incumbent_notes) and (
            incumbent_notes.strip() not in (merged or "")
        )
    return plan


@dataclass
class Resolution:
    status: RemapStatus
    student: RosterEntry
    notes_preserved: bool = False
    merged_into: Optional[int] = None
    incumbent_notes_replaced: bool = False


async def attach(
    db: AsyncSession, family: RecordFamily, row: Any, student: RosterEntry
) -> Resolution:
    family.restamp(row, student)
    db.add(row)
    await db.flush()
    return Resolution(
        status=RemapStatus.remapped,
        student=student,
        notes_preserved=family.has_notes(row),
    )


async def merge_into_incumbent(
    db: AsyncSession,
    family: RecordFamily,
    orphan: Any,
    incumbent: Any,
    student: RosterEntry,
    plan: MergePlan,
) -> Resolution:
    orphan_id, incumbent_id = orphan.id, incumbent.id
    for name, value in plan.values.items():
        setattr(incumbent, name, value)
    family.restamp_incumbent(incumbent, orphan, student)
    db.add(incumbent)
    await db.delete(orphan)
    await db.flush()

    if plan.incumbent_notes_replaced:
        logger.warning(
            "%s %d: notes of incumbent replaced by notes of merged orphan %d",
            family.label,
            incumbent_id,
            orphan_id,
        )
    return Resolution(
        status=RemapStatus.merged,
        student=student,
        notes_preserved=plan.notes_preserved,
        merged_into=incumbent_id,
        incumbent_notes_replaced=plan.incumbent_notes_replaced,
    )


async def resolve_orphan(
    db: AsyncSession,
    family: RecordFamily,
    row: Any,
    student: RosterEntry,
    *,
    policy: NotesPolicy = NotesPolicy.prefer_orphan,
    separator: str = "\n\n",
) -> Resolution:
    """Attach ``row`` to ``student``, merging into an incumbent when its slot is taken."""
    incumbent = None
    if family.find_incumbent is not None:
        incumbent = await family.find_incumbent(db, row, student.student_id)

    if incumbent is None:
        return await attach(db, family, row, student)

    logger.info(
        "  duplicate %s at %s for %r, merging %d into %d",
        family.label,
        family.slot_label(row),
        student.name,
        row.id,
        incumbent.id,
    )
    plan = plan_merge(family, row, incumbent, policy, separator)
    return await merge_into_incumbent(db, family, row, incumbent, student, plan)
