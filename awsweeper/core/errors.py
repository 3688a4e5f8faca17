"""Error taxonomy for a sweep run."""
from typing import Optional


class AWSweeperError(Exception):
    """Base class for all awsweeper errors."""


class ConfigurationError(AWSweeperError):
    """Malformed filter configuration. Fatal, raised before any I/O."""


class ProviderError(AWSweeperError):
    """Listing a resource type failed. Only that type is affected."""

    def __init__(self, resource_type: str, message: str):
        super().__init__(f"{resource_type}: {message}")
        self.resource_type = resource_type
        self.message = message


class ProviderUnavailableError(AWSweeperError):
    """The provider cannot be reached at all (credentials, endpoints)."""


class DeleteError(AWSweeperError):
    """A delete call failed. Subclasses say what the caller should do."""

    retryable = False

    def __init__(self, resource_type: str, resource_id: str, message: str, code: Optional[str] = None):
        super().__init__(f"{resource_type} {resource_id}: {message}")
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.message = message
        self.code = code


class NotFoundError(DeleteError):
    """The resource is already gone; counts as deleted."""


class DependencyViolationError(DeleteError):
    """Something still references the resource; try again later."""

    retryable = True


class OtherDeleteError(DeleteError):
    """Permanent failure for this run."""
