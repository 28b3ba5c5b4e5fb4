from app.schemas.reconciliation import (
    RemapStatus,
    RecordOutcome,
    UnmatchedIdentity,
    DuplicateIdentityWarning,
    ReconciliationReport,
    FamilyStats,
    ReconciliationRun,
    FamilyDiagnosis,
    AssignOwnerRequest,
    OrphanedEvaluationResponse,
)
