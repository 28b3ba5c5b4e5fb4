from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.crud.absence_requests import crud_absence_request
from app.crud.lesson_evaluations import crud_lesson_evaluation
from app.models.absence_request import AbsenceRequest
from app.models.lesson_evaluation import EvaluationCategory, LessonEvaluation
from app.models.student import Student
from app.services import diagnostics_service, stats_service
from app.services.record_families import ABSENCE_REQUESTS, LESSON_EVALUATIONS
from app.services.reconciliation_service import remap_lesson_evaluations


@pytest_asyncio.fixture
async def evaluations(db):
    """Two students in two classes and one evaluation of each kind."""
    jane = Student(name="Jane Doe", class_id="C1", position_in_class=1)
    ana = Student(name="Ana Ruiz", class_id="C2", position_in_class=1)
    db.add_all([jane, ana])
    await db.flush()

    def evaluation(**kwargs):
        kwargs.setdefault("chapter_number", 1)
        kwargs.setdefault("category", EvaluationCategory.D)
        kwargs.setdefault("stored_category", kwargs["category"].value)
        return LessonEvaluation(**kwargs)

    rows = {
        "linked": evaluation(
            eval_student_id=jane.id, student_name="Jane Doe", stored_class_id="C1",
            teacher_notes="On track",
        ),
        "linked_no_snapshot": evaluation(
            eval_student_id=ana.id, student_name=None, stored_class_id="C2", chapter_number=2,
        ),
        "orphan": evaluation(
            student_name="Jane Doe", stored_class_id="C1", chapter_number=3,
            teacher_notes="Good effort",
        ),
        "orphan_wrong_class": evaluation(
            student_name="Ana Ruiz", stored_class_id="C1", chapter_number=4,
            teacher_notes="Moved classes?",
        ),
        "broken_blank_name": evaluation(student_name="   ", stored_class_id="C1"),
        "broken_no_class": evaluation(
            student_name="Jane Doe", stored_class_id=None, teacher_notes="Lost",
        ),
    }
    db.add_all(rows.values())
    await db.flush()
    return rows


# ---------------------------------------------------------------------------
# Orphan scanner
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_orphans_exclude_linked_and_broken_rows(db, evaluations):
    orphans = await crud_lesson_evaluation.get_orphans(db)
    assert [o.id for o in orphans] == [
        evaluations["orphan"].id,
        evaluations["orphan_wrong_class"].id,
    ]

    broken = await crud_lesson_evaluation.get_broken(db)
    assert {b.id for b in broken} == {
        evaluations["broken_blank_name"].id,
        evaluations["broken_no_class"].id,
    }


@pytest.mark.asyncio
async def test_linked_rows_without_snapshot_are_found(db, evaluations):
    rows = await crud_lesson_evaluation.get_linked_without_snapshot(db)
    assert [r.id for r in rows] == [evaluations["linked_no_snapshot"].id]


@pytest.mark.asyncio
async def test_empty_family_has_no_orphans(db):
    assert await crud_absence_request.get_orphans(db) == []


@pytest.mark.asyncio
async def test_whitespace_only_snapshot_is_broken_not_orphaned(db):
    db.add_all([
        LessonEvaluation(
            student_name="\t\t", stored_class_id="C1", chapter_number=1,
            category=EvaluationCategory.D, stored_category="D", teacher_notes="\n",
        ),
        LessonEvaluation(
            student_name="Jane Doe", stored_class_id="C1\n", chapter_number=2,
            category=EvaluationCategory.D, stored_category="D",
        ),
    ])
    await db.flush()

    orphans = await crud_lesson_evaluation.get_orphans(db)
    stats = await stats_service.get_lesson_evaluation_stats(db)

    assert [o.student_name for o in orphans] == ["Jane Doe"]
    assert (stats.orphaned, stats.broken, stats.with_notes) == (1, 1, 0)

    report = await remap_lesson_evaluations(db)
    assert [d.student_name for d in report.details] == ["Jane Doe"]


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stats_partition_every_row(db, evaluations):
    stats = await stats_service.get_lesson_evaluation_stats(db)

    assert stats.family == "lesson_evaluations"
    assert (stats.total, stats.linked, stats.orphaned, stats.broken) == (6, 2, 2, 2)
    assert stats.is_partition_complete()
    assert stats.with_notes == 4
    assert stats.orphaned_with_notes == 2


@pytest.mark.asyncio
async def test_stats_after_run_move_matched_orphans_to_linked(db, evaluations):
    before = await stats_service.get_stats(db, LESSON_EVALUATIONS)
    report = await remap_lesson_evaluations(db)
    after = await stats_service.get_stats(db, LESSON_EVALUATIONS)

    assert report.remapped_count == 1
    assert report.failed_students == ["Ana Ruiz"]
    assert after.is_partition_complete()
    assert after.orphaned == before.orphaned - 1
    assert after.linked == before.linked + 1
    assert after.broken == before.broken


@pytest.mark.asyncio
async def test_stats_for_family_without_notes(db):
    db.add(AbsenceRequest(student_name=None, class_id="C1", absence_date=date(2025, 2, 3)))
    await db.flush()

    stats = await stats_service.get_stats(db, ABSENCE_REQUESTS)

    assert (stats.total, stats.broken) == (1, 1)
    assert stats.with_notes is None
    assert stats.orphaned_with_notes is None


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_diagnose_predicts_the_run_without_writing(db, evaluations):
    diagnosis = await diagnostics_service.diagnose(db, LESSON_EVALUATIONS)

    assert diagnosis.matchable_count == 1
    assert diagnosis.unmatchable_count == 1
    assert diagnosis.linked_without_snapshot == 1
    assert diagnosis.stats.orphaned == 2

    unmatched = diagnosis.unmatched[0]
    assert unmatched.raw_name == "Ana Ruiz"
    assert unmatched.class_id == "C1"
    assert unmatched.available_students == ["Jane Doe"]
    assert unmatched.other_classes == ["C2"]

    result = await db.execute(
        select(LessonEvaluation).where(LessonEvaluation.eval_student_id.is_(None))
    )
    assert len(result.scalars().all()) == 4


@pytest.mark.asyncio
async def test_orphaned_evaluations_with_notes(db, evaluations):
    rows = await diagnostics_service.list_orphaned_evaluations_with_notes(db)
    assert {r.id for r in rows} == {
        evaluations["orphan"].id,
        evaluations["orphan_wrong_class"].id,
    }

    limited = await diagnostics_service.list_orphaned_evaluations_with_notes(db, limit=1)
    assert len(limited) == 1


@pytest.mark.asyncio
async def test_per_family_stats_helpers(db):
    db.add(AbsenceRequest(student_name="Jane Doe", class_id="C1", absence_date=date(2025, 2, 4)))
    await db.flush()

    absences = await stats_service.get_absence_request_stats(db)
    links = await stats_service.get_parent_child_link_stats(db)

    assert (absences.family, absences.orphaned) == ("absence_requests", 1)
    assert (links.family, links.total) == ("parent_child_links", 0)
    assert links.is_partition_complete()
