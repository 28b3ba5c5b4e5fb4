import enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.models.lesson_evaluation import EvaluationCategory


class RemapStatus(str, enum.Enum):
    remapped = "remapped"
    merged = "merged"
    no_match = "no_match"
    failed = "failed"


class RecordOutcome(BaseModel):
    record_id: int
    status: RemapStatus
    student_name: Optional[str] = None
    class_id: Optional[str] = None
    normalized_name: Optional[str] = None
    new_student_id: Optional[str] = None
    canonical_name: Optional[str] = None
    slot: Optional[str] = None
    has_notes: Optional[bool] = None
    notes_preserved: bool = False
    merged_into: Optional[int] = None
    ambiguous: bool = False
    error: Optional[str] = None
    context: dict[str, Any] = Field(default_factory=dict)


class UnmatchedIdentity(BaseModel):
    raw_name: str
    normalized_name: str
    class_id: str
    record_count: int
    available_students: list[str] = Field(default_factory=list)
    other_classes: list[str] = Field(default_factory=list)


class DuplicateIdentityWarning(BaseModel):
    normalized_name: str
    class_id: str
    student_ids: list[str]
    names: list[str]
    chosen_student_id: str


class ReconciliationReport(BaseModel):
    family: str
    remapped_count: int = 0
    failed_count: int = 0
    unmatched_count: int = 0
    error_count: int = 0
    notes_preserved: Optional[int] = None
    failed_students: list[str] = Field(default_factory=list)
    unmatched: list[UnmatchedIdentity] = Field(default_factory=list)
    duplicate_identities: list[DuplicateIdentityWarning] = Field(default_factory=list)
    details: list[RecordOutcome] = Field(default_factory=list)


class FamilyStats(BaseModel):
    family: str
    total: int
    linked: int
    orphaned: int
    broken: int
    with_notes: Optional[int] = None
    orphaned_with_notes: Optional[int] = None

    def is_partition_complete(self) -> bool:
        return self.linked + self.orphaned + self.broken == self.total


class ReconciliationRun(BaseModel):
    before: FamilyStats
    report: ReconciliationReport
    after: FamilyStats
    consistent: bool


class FamilyDiagnosis(BaseModel):
    family: str
    stats: FamilyStats
    matchable_count: int
    unmatchable_count: int
    linked_without_snapshot: int
    unmatched: list[UnmatchedIdentity] = Field(default_factory=list)
    duplicate_identities: list[DuplicateIdentityWarning] = Field(default_factory=list)


class AssignOwnerRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=36)


class OrphanedEvaluationResponse(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    student_name: Optional[str]
    stored_class_id: Optional[str]
    chapter_number: int
    category: Optional[EvaluationCategory]
    stored_category: Optional[str]
    rating: Optional[str]
    teacher_notes: Optional[str]
