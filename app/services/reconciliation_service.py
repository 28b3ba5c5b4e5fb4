"""Re-attach owned records to the new student rows after a bulk roster re-import.

One generic routine handles every family: scan orphans, index the roster,
match each (name, class) group once, then attach or merge row by row. Each row
is written inside its own SAVEPOINT so a storage error costs one record, never
the run. Only failing to read the orphans or the roster aborts.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.crud.students import crud_student
from app.schemas.reconciliation import (
    DuplicateIdentityWarning,
    ReconciliationReport,
    ReconciliationRun,
    RecordOutcome,
    RemapStatus,
    UnmatchedIdentity,
)
from app.services import merge_resolver, stats_service
from app.services.identity_index import IdentityIndex, IdentityKey, RosterEntry, build_index
from app.services.matcher import Unmatched, match
from app.services.merge_resolver import NotesPolicy
from app.services.record_families import (
    ABSENCE_REQUESTS,
    LESSON_EVALUATIONS,
    PARENT_CHILD_LINKS,
    RECONCILE_ORDER,
    RecordFamily,
    get_family,
)

logger = logging.getLogger(__name__)


class ReconciliationFetchError(RuntimeError):
    """The orphan set or the roster could not be read; no progress is possible."""

    def __init__(self, family: str, stage: str, cause: Exception):
        super().__init__(f"Could not fetch {stage} for {family} reconciliation: {cause}")
        self.family = family
        self.stage = stage


# ---------------------------------------------------------------------------
# Helpers shared with diagnostics
# ---------------------------------------------------------------------------


def group_orphans(family: RecordFamily, orphans) -> dict[IdentityKey, list[Any]]:
    groups: dict[IdentityKey, list[Any]] = {}
    for row in orphans:
        groups.setdefault(family.snapshot(row).key(), []).append(row)
    return groups


def duplicate_warnings(index: IdentityIndex) -> list[DuplicateIdentityWarning]:
    return [
        DuplicateIdentityWarning(
            normalized_name=dup.key.normalized_name,
            class_id=dup.key.class_id,
            student_ids=[e.student_id for e in dup.entries],
            names=[e.name for e in dup.entries],
            chosen_student_id=dup.winner.student_id,
        )
        for dup in index.duplicates.values()
    ]


def describe_unmatched(
    index: IdentityIndex, outcome: Unmatched, record_count: int, max_hint: int
) -> UnmatchedIdentity:
    available = [e.name for e in index.students_in_class(outcome.class_id)]
    other_classes = index.classes_for_name(outcome.key.normalized_name) - {outcome.class_id}
    return UnmatchedIdentity(
        raw_name=outcome.raw_name,
        normalized_name=outcome.key.normalized_name,
        class_id=outcome.class_id,
        record_count=record_count,
        available_students=available[:max_hint],
        other_classes=sorted(other_classes),
    )


def _outcome(family: RecordFamily, row: Any, status: RemapStatus, **fields) -> RecordOutcome:
    snapshot = family.snapshot(row)
    return RecordOutcome(
        record_id=row.id,
        status=status,
        student_name=snapshot.name,
        class_id=snapshot.class_id,
        normalized_name=snapshot.key().normalized_name,
        slot=family.slot_label(row),
        has_notes=family.has_notes(row) if family.notes_field else None,
        context=family.describe(row),
        **fields,
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def reconcile(
    db: AsyncSession, family: RecordFamily, *, settings: Optional[Settings] = None
) -> ReconciliationReport:
    settings = settings or get_settings()
    policy = NotesPolicy(settings.RECONCILE_NOTES_POLICY)
    report = ReconciliationReport(
        family=family.name.value,
        notes_preserved=0 if family.notes_field else None,
    )

    logger.info("Starting %s remapping...", family.label)
    try:
        orphans = await family.crud.get_orphans(db)
    except SQLAlchemyError as exc:
        logger.error("Error fetching orphaned %s rows: %s", family.label, exc)
        raise ReconciliationFetchError(family.name.value, "orphaned records", exc) from exc

    if not orphans:
        logger.info("No orphaned %s rows found", family.label)
        return report

    if family.notes_field:
        with_notes = sum(1 for row in orphans if family.has_notes(row))
        logger.info(
            "Found %d orphaned %s rows (%d with notes)", len(orphans), family.label, with_notes
        )
    else:
        logger.info("Found %d orphaned %s rows", len(orphans), family.label)

    try:
        students = await crud_student.get_roster(db)
    except SQLAlchemyError as exc:
        logger.error("Error fetching student roster: %s", exc)
        raise ReconciliationFetchError(family.name.value, "student roster", exc) from exc

    index = build_index(students)
    report.duplicate_identities = duplicate_warnings(index)
    for dup in report.duplicate_identities:
        logger.warning(
            "Ambiguous roster identity %r in class %s: %d students, matching uses %s",
            dup.normalized_name,
            dup.class_id,
            len(dup.student_ids),
            dup.chosen_student_id,
        )

    groups = group_orphans(family, orphans)
    logger.info(
        "Matching %d orphans in %d student/class groups against %d roster identities",
        len(orphans),
        len(groups),
        len(index),
    )

    for rows in groups.values():
        outcome = match(family.snapshot(rows[0]), index)
        if isinstance(outcome, Unmatched):
            _record_unmatched(report, family, index, outcome, rows, settings)
            continue

        logger.info(
            "Remapping %d %s row(s) for %r -> %r (%s)",
            len(rows),
            family.label,
            family.snapshot(rows[0]).name,
            outcome.student.name,
            outcome.student_id,
        )
        for row in rows:
            await _reconcile_record(
                db,
                family,
                row,
                outcome.student,
                report,
                policy=policy,
                separator=settings.RECONCILE_NOTES_SEPARATOR,
                ambiguous=outcome.ambiguous,
            )

    _log_summary(family, report)
    return report


def _record_unmatched(
    report: ReconciliationReport,
    family: RecordFamily,
    index: IdentityIndex,
    outcome: Unmatched,
    rows: list[Any],
    settings: Settings,
) -> None:
    identity = describe_unmatched(
        index, outcome, len(rows), settings.RECONCILE_MAX_CLASS_ROSTER_HINT
    )
    logger.warning(
        "Could not find student %r (normalized %r) in class %s for %d %s row(s); "
        "class roster: %s",
        outcome.raw_name,
        outcome.key.normalized_name,
        outcome.class_id,
        len(rows),
        family.label,
        ", ".join(repr(n) for n in identity.available_students) or "none",
    )
    report.unmatched.append(identity)
    if outcome.raw_name not in report.failed_students:
        report.failed_students.append(outcome.raw_name)
    for row in rows:
        report.unmatched_count += 1
        report.failed_count += 1
        report.details.append(_outcome(family, row, RemapStatus.no_match, error=outcome.reason))


async def _reconcile_record(
    db: AsyncSession,
    family: RecordFamily,
    row: Any,
    student: RosterEntry,
    report: ReconciliationReport,
    *,
    policy: NotesPolicy,
    separator: str,
    ambiguous: bool = False,
) -> None:
    # Built before writing: a rolled-back savepoint expires the row.
    pending = _outcome(
        family,
        row,
        RemapStatus.failed,
        new_student_id=student.student_id,
        canonical_name=student.name,
        ambiguous=ambiguous,
    )
    try:
        async with db.begin_nested():
            resolution = await merge_resolver.resolve_orphan(
                db, family, row, student, policy=policy, separator=separator
            )
    except SQLAlchemyError as exc:
        logger.exception("Failed to remap %s %d", family.label, pending.record_id)
        report.error_count += 1
        report.failed_count += 1
        report.details.append(pending.model_copy(update={"error": str(exc)}))
        return

    report.remapped_count += 1
    if resolution.notes_preserved and report.notes_preserved is not None:
        report.notes_preserved += 1
    report.details.append(
        pending.model_copy(
            update={
                "status": resolution.status,
                "notes_preserved": resolution.notes_preserved,
                "merged_into": resolution.merged_into,
            }
        )
    )


def _log_summary(family: RecordFamily, report: ReconciliationReport) -> None:
    logger.info(
        "%s remapping complete: %d remapped, %d failed (%d unmatched, %d errors)",
        family.label.capitalize(),
        report.remapped_count,
        report.failed_count,
        report.unmatched_count,
        report.error_count,
    )
    if report.notes_preserved:
        logger.info("Preserved teacher notes in %d %s rows", report.notes_preserved, family.label)
    if report.failed_students:
        logger.warning(
            "Students not found in new import (%d): %s",
            len(report.failed_students),
            ", ".join(report.failed_students),
        )


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


async def remap_parent_child_links(
    db: AsyncSession, *, settings: Optional[Settings] = None
) -> ReconciliationReport:
    return await reconcile(db, PARENT_CHILD_LINKS, settings=settings)


async def remap_absence_requests(
    db: AsyncSession, *, settings: Optional[Settings] = None
) -> ReconciliationReport:
    return await reconcile(db, ABSENCE_REQUESTS, settings=settings)


async def remap_lesson_evaluations(
    db: AsyncSession, *, settings: Optional[Settings] = None
) -> ReconciliationReport:
    return await reconcile(db, LESSON_EVALUATIONS, settings=settings)


async def reconcile_all(
    db: AsyncSession, *, settings: Optional[Settings] = None
) -> list[ReconciliationReport]:
    """Run every family in order. A fetch failure in any family aborts the rest."""
    return [
        await reconcile(db, get_family(name), settings=settings) for name in RECONCILE_ORDER
    ]


async def reconcile_with_stats(
    db: AsyncSession, family: RecordFamily, *, settings: Optional[Settings] = None
) -> ReconciliationRun:
    """Run one family between two independent stats snapshots and cross-check them."""
    before = await stats_service.get_stats(db, family)
    report = await reconcile(db, family, settings=settings)
    after = await stats_service.get_stats(db, family)

    consistent = (
        before.is_partition_complete()
        and after.is_partition_complete()
        and before.orphaned - after.orphaned == report.remapped_count
    )
    if not consistent:
        logger.error(
            "%s stats disagree with run: orphaned %d -> %d but %d remapped "
            "(before %s, after %s)",
            family.label,
            before.orphaned,
            after.orphaned,
            report.remapped_count,
            before.model_dump(),
            after.model_dump(),
        )
    return ReconciliationRun(before=before, report=report, after=after, consistent=consistent)


async def assign_owner(
    db: AsyncSession,
    family: RecordFamily,
    record_id: int,
    student_id: str,
    *,
    settings: Optional[Settings] = None,
) -> RecordOutcome:
    """Operator override: attach one record to an explicit student.

    Goes through the same attach/merge path as reconciliation, so evaluation
    slots are merged and the snapshot is re-stamped to the roster spelling.
    """
    settings = settings or get_settings()
    row = await family.crud.get(db, record_id)
    if row is None:
        raise ValueError(f"{family.label.capitalize()} {record_id} not found")
    student = await crud_student.get(db, student_id)
    if student is None:
        raise ValueError(f"Student {student_id} not found")

    entry = RosterEntry(student.id, student.name, student.class_id)
    pending = _outcome(
        family,
        row,
        RemapStatus.failed,
        new_student_id=entry.student_id,
        canonical_name=entry.name,
    )
    resolution = await merge_resolver.resolve_orphan(
        db,
        family,
        row,
        entry,
        policy=NotesPolicy(settings.RECONCILE_NOTES_POLICY),
        separator=settings.RECONCILE_NOTES_SEPARATOR,
    )
    logger.info(
        "Manually assigned %s %d to %r (%s): %s",
        family.label,
        record_id,
        entry.name,
        entry.student_id,
        resolution.status.value,
    )
    return pending.model_copy(
        update={
            "status": resolution.status,
            "notes_preserved": resolution.notes_preserved,
            "merged_into": resolution.merged_into,
        }
    )
