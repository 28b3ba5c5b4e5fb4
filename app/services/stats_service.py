"""Point-in-time health counts for each owned-record family.

Every row is exactly one of linked, orphaned or broken, so the three counts
always add up to the total. Callers take these before and after a run to show
the effect independently of the run's own counters.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.reconciliation import FamilyStats
from app.services.record_families import (
    ABSENCE_REQUESTS,
    LESSON_EVALUATIONS,
    PARENT_CHILD_LINKS,
    RecordFamily,
)


async def get_stats(db: AsyncSession, family: RecordFamily) -> FamilyStats:
    crud = family.crud
    stats = FamilyStats(
        family=family.name.value,
        total=await crud.count(db),
        linked=await crud.count(db, crud.linked_criteria()),
        orphaned=await crud.count(db, crud.orphan_criteria()),
        broken=await crud.count(db, crud.broken_criteria()),
    )
    if family.notes_field is not None:
        notes = crud.notes_criteria()
        stats.with_notes = await crud.count(db, notes)
        stats.orphaned_with_notes = await crud.count(db, crud.orphan_criteria(), notes)
    return stats


async def get_parent_child_link_stats(db: AsyncSession) -> FamilyStats:
    return await get_stats(db, PARENT_CHILD_LINKS)


async def get_absence_request_stats(db: AsyncSession) -> FamilyStats:
    return await get_stats(db, ABSENCE_REQUESTS)


async def get_lesson_evaluation_stats(db: AsyncSession) -> FamilyStats:
    return await get_stats(db, LESSON_EVALUATIONS)
