"""Resolve an identity snapshot against the identity index. A miss is a miss."""

from dataclasses import dataclass
from typing import Union

from app.services.identity_index import (
    IdentityIndex,
    IdentityKey,
    IdentitySnapshot,
    RosterEntry,
)

NO_MATCH_REASON = "Student not found in new dataset"


@dataclass(frozen=True)
class Resolved:
    key: IdentityKey
    student: RosterEntry
    ambiguous: bool = False

    @property
    def student_id(self) -> str:
        return self.student.student_id


@dataclass(frozen=True)
class Unmatched:
    key: IdentityKey
    raw_name: str
    class_id: str
    reason: str = NO_MATCH_REASON


MatchOutcome = Union[Resolved, Unmatched]


def match(snapshot: IdentitySnapshot, index: IdentityIndex) -> MatchOutcome:
    key = snapshot.key()
    entry = index.lookup(key) if key.normalized_name else None
    if entry is None:
        return Unmatched(key=key, raw_name=snapshot.name or "", class_id=key.class_id)
    return Resolved(key=key, student=entry, ambiguous=index.is_ambiguous(key))
