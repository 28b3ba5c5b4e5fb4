"""Reconciliation endpoints: remap orphaned records and inspect family health."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.reconciliation import (
    AssignOwnerRequest,
    FamilyDiagnosis,
    FamilyStats,
    OrphanedEvaluationResponse,
    ReconciliationReport,
    ReconciliationRun,
    RecordOutcome,
)
from app.services import diagnostics_service, reconciliation_service, stats_service
from app.services.reconciliation_service import ReconciliationFetchError
from app.services.record_families import RecordFamilyName, get_family


router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])


@router.post("/remap-all", response_model=list[ReconciliationReport])
async def remap_all(db: Annotated[AsyncSession, Depends(get_db)]):
    try:
        return await reconciliation_service.reconcile_all(db)
    except ReconciliationFetchError as exc:
        raise HTTPException(503, str(exc))


@router.get(
    "/lesson_evaluations/orphans-with-notes",
    response_model=list[OrphanedEvaluationResponse],
)
async def orphaned_evaluations_with_notes(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Optional[int] = None,
):
    return await diagnostics_service.list_orphaned_evaluations_with_notes(db, limit=limit)


@router.post("/{family}/remap", response_model=ReconciliationRun)
async def remap_family(
    family: RecordFamilyName,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        return await reconciliation_service.reconcile_with_stats(db, get_family(family))
    except ReconciliationFetchError as exc:
        raise HTTPException(503, str(exc))


@router.get("/{family}/stats", response_model=FamilyStats)
async def family_stats(
    family: RecordFamilyName,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await stats_service.get_stats(db, get_family(family))


@router.get("/{family}/diagnostics", response_model=FamilyDiagnosis)
async def family_diagnostics(
    family: RecordFamilyName,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await diagnostics_service.diagnose(db, get_family(family))


@router.post("/{family}/records/{record_id}/assign", response_model=RecordOutcome)
async def assign_record_owner(
    family: RecordFamilyName,
    record_id: int,
    body: AssignOwnerRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        return await reconciliation_service.assign_owner(
            db, get_family(family), record_id, body.student_id
        )
    except ValueError as exc:
        raise HTTPException(404, str(exc))
