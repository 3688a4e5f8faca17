"""YAML configuration loader with validation."""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from awsweeper.core.errors import ConfigurationError
from awsweeper.core.filter import CreatedWindow, FilterSpec, NamePattern, TagGroup, TypeFilter

SECTION_KEYS = ('ids', 'tags', 'name', 'name_regex', 'created')


@dataclass
class Config:
    """Runtime options of a sweep. Filters live in FilterSpec."""
    dry_run: bool = True
    region: Optional[str] = None
    profile: Optional[str] = None
    max_passes: int = 5
    workers: int = 10
    pass_delay: float = 5.0
    verbosity: int = 0
    json_logs: bool = False
    output: str = 'text'

    def __post_init__(self):
        if self.max_passes < 0:
            raise ConfigurationError(f"max_passes must be >= 0, got {self.max_passes}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")
        if self.pass_delay < 0:
            raise ConfigurationError(f"pass_delay must be >= 0, got {self.pass_delay}")
        if self.output not in ('text', 'json'):
            raise ConfigurationError(f"output must be 'text' or 'json', got {self.output!r}")


def load_filter_spec(path: str, supported_types: Optional[Iterable[str]] = None) -> FilterSpec:
    """Load a filter spec from a YAML (or JSON) file.

    Args:
        path: Path to the config file.
        supported_types: Resource type names accepted as sections. Any other
            section name is rejected. None disables the check.

    Returns:
        FilterSpec instance

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    return parse_filter_spec(data, supported_types)


def parse_filter_spec(data: Any, supported_types: Optional[Iterable[str]] = None) -> FilterSpec:
    """Parse a config dict into a FilterSpec.

    A section present with a null or empty body targets every resource of
    that type. A section whose keys are all empty is rejected, so that the
    match-everything case is never reached by accident.
    """
    if data is None:
        raise ConfigurationError("Config is empty: no resource types to sweep")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config must be a mapping of resource types, got {type(data).__name__}")

    known = set(supported_types) if supported_types is not None else None
    sections = {}
    for resource_type, body in data.items():
        if not isinstance(resource_type, str):
            raise ConfigurationError(f"Resource type must be a string, got {resource_type!r}")
        if known is not None and resource_type not in known:
            raise ConfigurationError(
                f"Unsupported resource type: {resource_type} (supported: {', '.join(sorted(known))})"
            )
        sections[resource_type] = _parse_section(resource_type, body)
    return FilterSpec(sections)


def _parse_section(resource_type: str, body: Any) -> TypeFilter:
    if body is None or body == {}:
        return TypeFilter()
    if not isinstance(body, dict):
        raise ConfigurationError(f"{resource_type}: section must be a mapping, got {type(body).__name__}")

    unknown = set(body) - set(SECTION_KEYS)
    if unknown:
        raise ConfigurationError(f"{resource_type}: unknown keys {sorted(unknown)}")
    if 'name' in body and 'name_regex' in body:
        raise ConfigurationError(f"{resource_type}: use either 'name' or 'name_regex', not both")

    section = TypeFilter(
        ids=_parse_ids(resource_type, body.get('ids')),
        tags=_parse_tags(resource_type, body.get('tags')),
        name=_parse_name(resource_type, body),
        created=_parse_created(resource_type, body.get('created')),
    )
    if section.is_empty:
        raise ConfigurationError(
            f"{resource_type}: all filters are empty; use an empty section to target every {resource_type}"
        )
    return section


def _parse_ids(resource_type: str, ids: Any) -> frozenset:
    if ids is None:
        return frozenset()
    if isinstance(ids, str) or not isinstance(ids, list):
        raise ConfigurationError(f"{resource_type}: 'ids' must be a list")
    for i in ids:
        if not isinstance(i, str) or not i:
            raise ConfigurationError(f"{resource_type}: invalid id {i!r}")
    return frozenset(ids)


def _parse_tags(resource_type: str, tags: Any) -> tuple:
    if tags is None:
        return ()
    groups = tags if isinstance(tags, list) else [tags]
    parsed = []
    for group in groups:
        if not isinstance(group, dict):
            raise ConfigurationError(f"{resource_type}: 'tags' must be a mapping or a list of mappings")
        for key, value in group.items():
            if not isinstance(key, str) or not key:
                raise ConfigurationError(f"{resource_type}: invalid tag key {key!r}")
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise ConfigurationError(f"{resource_type}: invalid value for tag {key!r}")
        if group:
            parsed.append(TagGroup.from_mapping({k: _tag_value(v) for k, v in group.items()}))
    return tuple(parsed)


def _tag_value(value: Any) -> Optional[str]:
    # YAML turns `true`/`1` into non-strings; AWS tag values are always strings
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _parse_name(resource_type: str, body: Dict[str, Any]) -> Optional[NamePattern]:
    regex = 'name_regex' in body
    pattern = body.get('name_regex') if regex else body.get('name')
    if pattern is None:
        return None
    if not isinstance(pattern, str):
        raise ConfigurationError(f"{resource_type}: name pattern must be a string")
    if not pattern:
        return None
    try:
        return NamePattern(pattern, regex=regex)
    except re.error as e:
        raise ConfigurationError(f"{resource_type}: invalid name_regex {pattern!r}: {e}") from e


def _parse_created(resource_type: str, created: Any) -> Optional[CreatedWindow]:
    if created is None:
        return None
    if not isinstance(created, dict):
        raise ConfigurationError(f"{resource_type}: 'created' must be a mapping with 'before' and/or 'after'")
    unknown = set(created) - {'before', 'after'}
    if unknown:
        raise ConfigurationError(f"{resource_type}: unknown keys in 'created': {sorted(unknown)}")
    before = _parse_timestamp(resource_type, created.get('before'))
    after = _parse_timestamp(resource_type, created.get('after'))
    if before is None and after is None:
        return None
    if before is not None and after is not None and after >= before:
        raise ConfigurationError(f"{resource_type}: 'created.after' must be earlier than 'created.before'")
    return CreatedWindow(before=before, after=after)


def _parse_timestamp(resource_type: str, value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError as e:
            raise ConfigurationError(f"{resource_type}: invalid timestamp {value!r}") from e
    else:
        raise ConfigurationError(f"{resource_type}: invalid timestamp {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
