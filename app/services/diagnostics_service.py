"""Read-only checks to run before (or instead of) a reconciliation."""

import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.crud.lesson_evaluations import crud_lesson_evaluation
from app.crud.students import crud_student
from app.models.lesson_evaluation import LessonEvaluation
from app.schemas.reconciliation import FamilyDiagnosis
from app.services import stats_service
from app.services.identity_index import build_index
from app.services.matcher import Unmatched, match
from app.services.reconciliation_service import (
    describe_unmatched,
    duplicate_warnings,
    group_orphans,
)
from app.services.record_families import RecordFamily

logger = logging.getLogger(__name__)


async def diagnose(
    db: AsyncSession, family: RecordFamily, *, settings: Optional[Settings] = None
) -> FamilyDiagnosis:
    """Dry run: how many orphans would match now, and why the rest would not."""
    settings = settings or get_settings()
    stats = await stats_service.get_stats(db, family)
    orphans = await family.crud.get_orphans(db)
    index = build_index(await crud_student.get_roster(db))

    crud = family.crud
    diagnosis = FamilyDiagnosis(
        family=family.name.value,
        stats=stats,
        matchable_count=0,
        unmatchable_count=0,
        linked_without_snapshot=await crud.count(
            db, crud.linked_criteria(), crud.snapshot_missing_criteria()
        ),
        duplicate_identities=duplicate_warnings(index),
    )

    for rows in group_orphans(family, orphans).values():
        outcome = match(family.snapshot(rows[0]), index)
        if isinstance(outcome, Unmatched):
            diagnosis.unmatchable_count += len(rows)
            diagnosis.unmatched.append(
                describe_unmatched(
                    index, outcome, len(rows), settings.RECONCILE_MAX_CLASS_ROSTER_HINT
                )
            )
        else:
            diagnosis.matchable_count += len(rows)

    if diagnosis.linked_without_snapshot:
        logger.warning(
            "%d linked %s rows have no identity snapshot and would be lost on the next import",
            diagnosis.linked_without_snapshot,
            family.label,
        )
    logger.info(
        "%s diagnosis: %d orphans would match, %d would not",
        family.label.capitalize(),
        diagnosis.matchable_count,
        diagnosis.unmatchable_count,
    )
    return diagnosis


async def list_orphaned_evaluations_with_notes(
    db: AsyncSession, limit: Optional[int] = None
) -> Sequence[LessonEvaluation]:
    """Orphaned evaluations carrying teacher notes, most recently edited first."""
    return await crud_lesson_evaluation.get_orphaned_with_notes(db, limit=limit)
