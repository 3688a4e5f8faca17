"""In-memory stand-in for AWSProvider used by the engine tests."""
import threading

from botocore.exceptions import ClientError

from awsweeper.core.errors import (
    DependencyViolationError, NotFoundError, ProviderError, ProviderUnavailableError,
)
from awsweeper.core.models import ResourceDescriptor


def client_error(code, message='boom', operation='Test'):
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


class FakeProvider:
    """Holds resources in a dict and refuses to delete anything that is still
    blocked by another existing resource, the way AWS answers with
    DependencyViolation."""

    def __init__(self, unavailable=False):
        self.resources = {}
        self.blockers = {}
        self.failures = {}
        self.list_errors = {}
        self.unavailable = unavailable
        self.delete_calls = []
        self.list_calls = []
        self._lock = threading.Lock()

    def add(self, resource_type, resource_id, tags=None, name=None, created_at=None):
        tags = tags or {}
        if name is None:
            name = tags.get('Name')
        descriptor = ResourceDescriptor(resource_type, resource_id, tags, name, created_at)
        self.resources[(resource_type, resource_id)] = descriptor
        return descriptor

    def block(self, target, by):
        """``target`` can't be deleted while ``by`` exists. Both are (type, id)."""
        self.blockers.setdefault(target, set()).add(by)

    def fail(self, key, error):
        self.failures[key] = error

    def exists(self, resource_type, resource_id):
        return (resource_type, resource_id) in self.resources

    def check(self):
        if self.unavailable:
            raise ProviderUnavailableError("no credentials")
        return '123456789012'

    def list(self, resource_type):
        with self._lock:
            self.list_calls.append(resource_type)
        if resource_type in self.list_errors:
            raise ProviderError(resource_type, self.list_errors[resource_type])
        return sorted(
            (d for (t, _), d in self.resources.items() if t == resource_type),
            key=lambda d: d.id,
        )

    def delete(self, resource_type, resource_id):
        key = (resource_type, resource_id)
        with self._lock:
            self.delete_calls.append(key)
            if key in self.failures:
                raise self.failures[key]
            if key not in self.resources:
                raise NotFoundError(resource_type, resource_id, 'does not exist', 'NotFound')
            live = sorted(b for b in self.blockers.get(key, ()) if b in self.resources)
            if live:
                raise DependencyViolationError(
                    resource_type, resource_id, f"has dependent object {live[0][1]}", 'DependencyViolation')
            del self.resources[key]
