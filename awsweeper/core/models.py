"""Data model shared by the matcher, planner and destroyer."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ResourceDescriptor:
    """Snapshot of one live resource, taken at matching time.

    ``type`` is the Terraform-style type name (``aws_subnet``) and acts as the
    variant tag everything else dispatches on.
    """
    type: str
    id: str
    tags: Mapping[str, str] = field(default_factory=dict)
    name: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'tags', MappingProxyType(dict(self.tags or {})))

    def __hash__(self):
        return hash((self.type, self.id))

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.type, self.id)


@dataclass(frozen=True)
class Candidate:
    descriptor: ResourceDescriptor
    matched_by: str

    @property
    def type(self) -> str:
        return self.descriptor.type

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def sort_key(self) -> Tuple[str, str]:
        return self.descriptor.sort_key


@dataclass(frozen=True)
class Batch:
    """Candidates deleted together in one pass."""
    rank: int
    candidates: Tuple[Candidate, ...]

    def __len__(self):
        return len(self.candidates)


@dataclass(frozen=True)
class Plan:
    batches: Tuple[Batch, ...] = ()

    @property
    def candidates(self) -> Tuple[Candidate, ...]:
        return tuple(c for b in self.batches for c in b.candidates)

    def __len__(self):
        return sum(len(b) for b in self.batches)


class OutcomeStatus(str, Enum):
    DELETED = 'deleted'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass(frozen=True)
class Outcome:
    candidate: Candidate
    status: OutcomeStatus
    reason: str = ''
    error: Optional[str] = None
    retryable: bool = False
    already_absent: bool = False
    attempts: int = 0

    @property
    def type(self) -> str:
        return self.candidate.type

    @property
    def id(self) -> str:
        return self.candidate.id


@dataclass(frozen=True)
class TypeSummary:
    matched: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(frozen=True)
class Report:
    """Terminal artifact of a run. Outcomes are ordered by (type, id)."""
    dry_run: bool
    outcomes: Tuple[Outcome, ...] = ()
    matched: Mapping[str, int] = field(default_factory=dict)
    type_errors: Mapping[str, str] = field(default_factory=dict)
    cancelled: bool = False

    def __post_init__(self):
        ordered = tuple(sorted(self.outcomes, key=lambda o: o.candidate.sort_key))
        object.__setattr__(self, 'outcomes', ordered)
        object.__setattr__(self, 'matched', MappingProxyType(dict(self.matched)))
        object.__setattr__(self, 'type_errors', MappingProxyType(dict(self.type_errors)))

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.DELETED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    def by_type(self) -> Dict[str, TypeSummary]:
        counts: Dict[str, Dict[str, int]] = {}
        for resource_type, n in self.matched.items():
            counts.setdefault(resource_type, {'matched': 0, 'deleted': 0, 'skipped': 0, 'failed': 0})['matched'] = n
        for o in self.outcomes:
            entry = counts.setdefault(o.type, {'matched': 0, 'deleted': 0, 'skipped': 0, 'failed': 0})
            entry[o.status.value] += 1
        for resource_type in self.type_errors:
            counts.setdefault(resource_type, {'matched': 0, 'deleted': 0, 'skipped': 0, 'failed': 0})
        return {t: TypeSummary(**counts[t]) for t in sorted(counts)}

    def with_matching(self, matched: Mapping[str, int], type_errors: Mapping[str, str]) -> 'Report':
        return Report(
            dry_run=self.dry_run,
            outcomes=self.outcomes,
            matched=matched,
            type_errors=type_errors,
            cancelled=self.cancelled,
        )
