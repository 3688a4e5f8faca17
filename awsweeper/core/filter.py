"""Resource filters.

A filter section for one resource type holds predicate groups. A resource
matches the section if any group matches (OR); inside a tag group every
key/value pair has to hold (AND). A section without any group matches every
resource of its type, while a type with no section is not targeted at all.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Iterator, List, Mapping, Optional, Tuple

from awsweeper.core.models import ResourceDescriptor

MATCH_ALL = 'all'


@dataclass(frozen=True)
class TagGroup:
    """Key/value pairs that must all be present. Empty value means any value."""
    pairs: Tuple[Tuple[str, str], ...]

    @classmethod
    def from_mapping(cls, tags: Mapping[str, Optional[str]]) -> 'TagGroup':
        return cls(tuple(sorted((k, '' if v is None else v) for k, v in tags.items())))

    def matches(self, tags: Mapping[str, str]) -> bool:
        for key, value in self.pairs:
            if key not in tags:
                return False
            if value and tags[key] != value:
                return False
        return True


@dataclass(frozen=True)
class NamePattern:
    pattern: str
    regex: bool = False

    def __post_init__(self):
        if self.regex:
            re.compile(self.pattern)

    def matches(self, name: Optional[str]) -> bool:
        if name is None:
            return False
        if self.regex:
            return re.search(self.pattern, name) is not None
        return self.pattern in name


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class CreatedWindow:
    """Half-open creation time window: after <= created_at < before."""
    before: Optional[datetime] = None
    after: Optional[datetime] = None

    def matches(self, created_at: Optional[datetime]) -> bool:
        if created_at is None:
            return False
        created_at = _aware(created_at)
        if self.before is not None and created_at >= _aware(self.before):
            return False
        if self.after is not None and created_at < _aware(self.after):
            return False
        return True


@dataclass(frozen=True)
class TypeFilter:
    ids: FrozenSet[str] = frozenset()
    tags: Tuple[TagGroup, ...] = ()
    name: Optional[NamePattern] = None
    created: Optional[CreatedWindow] = None

    @property
    def is_empty(self) -> bool:
        return not (self.ids or self.tags or self.name or self.created)

    def match(self, descriptor: ResourceDescriptor) -> Optional[str]:
        """Return the name of the first predicate group that fires, or None."""
        if self.is_empty:
            return MATCH_ALL
        if descriptor.id in self.ids:
            return 'ids'
        if any(group.matches(descriptor.tags) for group in self.tags):
            return 'tags'
        if self.name is not None and self.name.matches(descriptor.name):
            return 'name'
        if self.created is not None and self.created.matches(descriptor.created_at):
            return 'created'
        return None


@dataclass(frozen=True)
class FilterSpec:
    sections: Mapping[str, TypeFilter] = field(default_factory=dict)

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self.sections

    def __iter__(self) -> Iterator[str]:
        return iter(self.types)

    def __len__(self):
        return len(self.sections)

    @property
    def types(self) -> List[str]:
        return sorted(self.sections)

    def get(self, resource_type: str) -> Optional[TypeFilter]:
        return self.sections.get(resource_type)

    def match(self, descriptor: ResourceDescriptor) -> Optional[str]:
        section = self.sections.get(descriptor.type)
        if section is None:
            return None
        return section.match(descriptor)


def match(descriptor: ResourceDescriptor, filter_spec: FilterSpec) -> bool:
    return filter_spec.match(descriptor) is not None
