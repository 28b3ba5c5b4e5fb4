"""Identity index: (normalized name, class) -> current student, rebuilt for every run.

Owned records survive a roster wipe only through their denormalized identity
snapshot, so this index is the sole bridge from an orphan back to a student.
Matching is exact after normalization; nothing here tries to guess at
similar-but-different names.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    """Trim, collapse internal whitespace and case-fold."""
    if not name:
        return ""
    return _WHITESPACE_RE.sub(" ", name.strip()).casefold()


def normalize_class_id(class_id: Optional[str]) -> str:
    return str(class_id).strip() if class_id is not None else ""


class IdentitySnapshot(NamedTuple):
    """Owner name and class as captured on the owned record (the recovery key)."""

    name: Optional[str]
    class_id: Optional[str]

    @property
    def is_complete(self) -> bool:
        return bool(normalize_name(self.name)) and bool(normalize_class_id(self.class_id))

    def key(self) -> "IdentityKey":
        return IdentityKey(normalize_name(self.name), normalize_class_id(self.class_id))


class IdentityKey(NamedTuple):
    normalized_name: str
    class_id: str

    def __str__(self) -> str:
        return f"{self.normalized_name}|{self.class_id}"


class RosterEntry(NamedTuple):
    student_id: str
    name: str
    class_id: str


class _RosterStudent(Protocol):
    id: str
    name: str
    class_id: str


@dataclass
class DuplicateIdentity:
    """Several roster students share one key; the last one seen wins the lookup."""

    key: IdentityKey
    entries: list[RosterEntry] = field(default_factory=list)

    @property
    def winner(self) -> RosterEntry:
        return self.entries[-1]


class IdentityIndex:
    def __init__(self) -> None:
        self._entries: dict[IdentityKey, RosterEntry] = {}
        self._by_class: dict[str, list[RosterEntry]] = {}
        self._classes_by_name: dict[str, set[str]] = {}
        self.duplicates: dict[IdentityKey, DuplicateIdentity] = {}

    @classmethod
    def build(cls, students: Iterable[_RosterStudent]) -> "IdentityIndex":
        index = cls()
        for student in students:
            index.add(RosterEntry(str(student.id), student.name, normalize_class_id(student.class_id)))
        if index.duplicates:
            logger.warning(
                "Roster contains %d duplicated name/class identities", len(index.duplicates)
            )
        return index

    def add(self, entry: RosterEntry) -> None:
        key = IdentityKey(normalize_name(entry.name), entry.class_id)
        previous = self._entries.get(key)
        if previous is not None:
            duplicate = self.duplicates.get(key)
            if duplicate is None:
                duplicate = DuplicateIdentity(key=key, entries=[previous])
                self.duplicates[key] = duplicate
            duplicate.entries.append(entry)
        self._entries[key] = entry
        self._by_class.setdefault(entry.class_id, []).append(entry)
        self._classes_by_name.setdefault(key.normalized_name, set()).add(entry.class_id)

    def lookup(self, key: IdentityKey) -> Optional[RosterEntry]:
        return self._entries.get(key)

    def is_ambiguous(self, key: IdentityKey) -> bool:
        return key in self.duplicates

    def students_in_class(self, class_id: str) -> list[RosterEntry]:
        return list(self._by_class.get(normalize_class_id(class_id), []))

    def classes_for_name(self, normalized_name: str) -> set[str]:
        return set(self._classes_by_name.get(normalized_name, set()))

    def as_mapping(self) -> dict[IdentityKey, str]:
        return {key: entry.student_id for key, entry in self._entries.items()}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


def build_index(students: Iterable[_RosterStudent]) -> IdentityIndex:
    return IdentityIndex.build(students)
