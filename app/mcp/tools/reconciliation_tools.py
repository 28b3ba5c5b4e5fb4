"""Reconciliation MCP tools: remap orphaned records and report family health."""

from app.database import AsyncSessionLocal
from app.mcp.server import mcp
from app.services import diagnostics_service, reconciliation_service, stats_service
from app.services.record_families import RecordFamily, get_family


def _require_family(family: str) -> RecordFamily:
    if not family or not family.strip():
        raise ValueError("family is required")
    return get_family(family.strip().lower())


@mcp.tool()
async def remap_family(family: str) -> dict:
    """
    Re-attach orphaned records of one family to the current roster.
    family: parent_child_links | absence_requests | lesson_evaluations
    """
    record_family = _require_family(family)
    async with AsyncSessionLocal() as db:
        run = await reconciliation_service.reconcile_with_stats(db, record_family)
        await db.commit()
        return run.model_dump(mode="json")


@mcp.tool()
async def remap_all_families() -> list[dict]:
    """Re-attach orphaned parent links, absence requests and lesson evaluations, in that order."""
    async with AsyncSessionLocal() as db:
        reports = await reconciliation_service.reconcile_all(db)
        await db.commit()
        return [
            report.model_dump(mode="json", exclude={"details"}) for report in reports
        ]


@mcp.tool()
async def get_family_stats(family: str) -> dict:
    """Linked / orphaned / broken counts for one record family."""
    record_family = _require_family(family)
    async with AsyncSessionLocal() as db:
        stats = await stats_service.get_stats(db, record_family)
        return stats.model_dump(mode="json")


@mcp.tool()
async def diagnose_family(family: str) -> dict:
    """Dry run: which orphans would match the current roster and why the others would not."""
    record_family = _require_family(family)
    async with AsyncSessionLocal() as db:
        diagnosis = await diagnostics_service.diagnose(db, record_family)
        return diagnosis.model_dump(mode="json")
