from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from botocore.exceptions import ClientError

from awsweeper.core.errors import DeleteError, DependencyViolationError, NotFoundError, OtherDeleteError
from awsweeper.core.models import ResourceDescriptor
from awsweeper.core.retry import error_code

# Types not in the planner's table land in the middle
DEFAULT_RANK = 50

DEPENDENCY_CODES = frozenset(['DependencyViolation', 'ResourceInUse'])


def tags_from_list(tags: Optional[Iterable[Dict[str, str]]]) -> Dict[str, str]:
    """Convert the AWS [{'Key': k, 'Value': v}] shape into a dict."""
    return {t['Key']: t.get('Value', '') for t in tags or []}


def paginate(client, operation: str, key: str, **kwargs) -> List[Dict[str, Any]]:
    items = []
    paginator = client.get_paginator(operation)
    for page in paginator.paginate(**kwargs):
        items.extend(page.get(key, []))
    return items


class ResourceKind(ABC):
    """One deletable resource type.

    Subclasses set ``type_name``, ``service`` and ``rank`` and list the AWS
    error codes that mean "already gone" for their type. Error codes are not
    uniform across services, so each kind carries its own table.
    """
    type_name = ''
    service = ''
    rank = DEFAULT_RANK
    not_found_codes: FrozenSet[str] = frozenset()
    dependency_codes: FrozenSet[str] = DEPENDENCY_CODES

    @abstractmethod
    def list(self, client) -> List[ResourceDescriptor]:
        """Return every live resource of this type, fully paginated."""

    @abstractmethod
    def delete(self, client, resource_id: str) -> None:
        pass

    def describe(self, resource_id, tags=None, name=None, created_at=None) -> ResourceDescriptor:
        tags = tags or {}
        if name is None:
            name = tags.get('Name')
        return ResourceDescriptor(
            type=self.type_name,
            id=resource_id,
            tags=tags,
            name=name,
            created_at=created_at,
        )

    def classify(self, error: ClientError, resource_id: str) -> DeleteError:
        code = error_code(error)
        message = error.response.get('Error', {}).get('Message', '') or str(error)
        if code in self.not_found_codes:
            return NotFoundError(self.type_name, resource_id, message, code)
        if code in self.dependency_codes:
            return DependencyViolationError(self.type_name, resource_id, message, code)
        return OtherDeleteError(self.type_name, resource_id, message, code)

    def __repr__(self):
        return f"<{type(self).__name__} {self.type_name}>"
